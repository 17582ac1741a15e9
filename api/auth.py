"""
Authentication blueprint:
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/google
- GET  /auth/google/callback

Access tokens are short-lived and never stored; the refresh token is stored
only as an Argon2 digest on the user and rotates on every use.
"""
from __future__ import annotations

import logging
import secrets
from urllib.parse import urlencode

from flask import Blueprint, request, jsonify, redirect, current_app, session as cookie_session
from sqlalchemy.exc import SQLAlchemyError

from models.schemas.user import UserLoginSchema
from services import sessions
from services.exceptions import ValidationError
from utils.oauth import OAuthError, google_authorization_url, fetch_google_profile

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/auth")

user_login_schema = UserLoginSchema()

OAUTH_STATE_KEY = "oauth_state"


def _refresh_token_from_body():
    # passed through unvalidated; the token decoder rejects anything but a JWT string
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None
    return payload.get("refreshToken")


@bp.post("/login")
def login():
    """
    Login: return accessToken and refreshToken
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      400:
        description: Missing email or password
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    payload = user_login_schema.load(payload, unknown="exclude")
    pair, user = sessions.login(payload.get("email"), payload.get("password"))
    body = pair.to_dict()
    body.update(
        {
            "user_id": user.id,
            "username": user.username,
            "email": user.email,
            "success": True,
        }
    )
    return jsonify(body), 200


@bp.post("/refresh")
def refresh():
    """
    Use a refresh token to obtain a new access/refresh pair (rotation).
    The presented refresh token is invalid afterwards.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns new tokens)
      400:
        description: refreshToken missing
      401:
        description: Invalid, expired or already used refresh token
    """
    pair = sessions.refresh(_refresh_token_from_body())
    return jsonify(pair.to_dict()), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the session of the refresh token's owner.
    Always 204 once a token is supplied.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      204:
        description: ""
      400:
        description: refreshToken missing
    """
    sessions.logout(_refresh_token_from_body())
    return ("", 204)


def _frontend_url(path: str) -> str:
    return current_app.config["FRONTEND_URL"].rstrip("/") + path


def _login_error_redirect(provider: str):
    return redirect(_frontend_url("/login?" + urlencode({"error": provider})))


@bp.get("/google")
def google_login():
    """
    Start the Google OAuth flow
    ---
    tags:
      - Auth
    responses:
      302:
        description: Redirect to Google consent screen
    """
    state = secrets.token_urlsafe(24)
    cookie_session[OAUTH_STATE_KEY] = state
    try:
        return redirect(google_authorization_url(state))
    except OAuthError as exc:
        logger.error("google oauth not configured: %s", exc)
        return _login_error_redirect("google")


@bp.get("/google/callback")
def google_callback():
    """
    Google OAuth callback. Tokens are handed to the frontend in the URL
    fragment, which browsers never send to a server.
    ---
    tags:
      - Auth
    parameters:
      - in: query
        name: code
        type: string
      - in: query
        name: state
        type: string
    responses:
      302:
        description: Redirect to the frontend
    """
    expected_state = cookie_session.pop(OAUTH_STATE_KEY, None)
    state = request.args.get("state")
    code = request.args.get("code")
    if request.args.get("error") or not code or not expected_state or state != expected_state:
        logger.warning("google callback rejected (error=%s)", request.args.get("error"))
        return _login_error_redirect("google")

    try:
        profile = fetch_google_profile(code)
        pair, _ = sessions.oauth_upsert_and_issue(
            "google", profile.provider_id, email=profile.email, username=profile.username
        )
    except (OAuthError, ValidationError) as exc:
        logger.warning("google login failed: %s", exc)
        return _login_error_redirect("google")
    except SQLAlchemyError:
        logger.exception("google login failed to store the account")
        return _login_error_redirect("google")

    return redirect(_frontend_url("/oauth/callback#" + urlencode(pair.to_dict())))
