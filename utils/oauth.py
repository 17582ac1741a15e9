"""
Minimal Google OAuth 2.0 authorization-code client.
Only what the callback needs: the consent URL and code -> profile exchange.
"""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import requests
from flask import current_app

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class OAuthError(Exception):
    """The provider handshake failed or returned an unusable profile."""


@dataclass(frozen=True)
class ProviderProfile:
    provider_id: str
    email: str | None
    username: str | None


def _require(key: str) -> str:
    value = current_app.config.get(key)
    if not value:
        raise OAuthError(f"Missing required config: {key}")
    return value


def google_authorization_url(state: str) -> str:
    params = {
        "client_id": _require("GOOGLE_CLIENT_ID"),
        "redirect_uri": _require("GOOGLE_CALLBACK_URL"),
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "prompt": "select_account",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def fetch_google_profile(code: str) -> ProviderProfile:
    timeout = current_app.config.get("OAUTH_HTTP_TIMEOUT", 10)
    try:
        token_resp = requests.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": _require("GOOGLE_CLIENT_ID"),
                "client_secret": _require("GOOGLE_CLIENT_SECRET"),
                "redirect_uri": _require("GOOGLE_CALLBACK_URL"),
                "grant_type": "authorization_code",
            },
            timeout=timeout,
        )
        token_resp.raise_for_status()
        access_token = token_resp.json().get("access_token")
        if not access_token:
            raise OAuthError("Token response carried no access_token")

        info_resp = requests.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
        )
        info_resp.raise_for_status()
        info = info_resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise OAuthError(f"Google handshake failed: {exc}") from exc

    if not info.get("sub"):
        raise OAuthError("Google profile has no subject")
    # unverified addresses must not be used to link existing accounts
    email = info.get("email") if info.get("email_verified", False) else None
    return ProviderProfile(provider_id=str(info["sub"]), email=email, username=info.get("name"))
