"""
Session manager: login, refresh (rotation), logout (revocation) and the
OAuth upsert-and-issue flow.

A user's session state is the refresh_token_hash column:
    NULL      -> no session
    digest    -> active; only the refresh token that hashes to it is valid

Every issue overwrites the digest, so one login/refresh invalidates all
previously issued refresh tokens for that user. Access tokens are never
stored and simply expire.
"""
from __future__ import annotations

import enum
import logging
import secrets
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from models import storage
from models.user import User
from models.schemas.common import is_valid_id, normalize_email
from services.exceptions import (
    ValidationError,
    InvalidCredentials,
    InvalidToken,
    MissingProviderEmail,
)
from utils.security import (
    REFRESH,
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    placeholder_hash,
    verify_password,
)

logger = logging.getLogger(__name__)

PROVIDER_FIELDS = {
    "google": "google_id",
    "facebook": "facebook_id",
}


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def to_dict(self) -> dict:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}


class OAuthOutcome(enum.Enum):
    PROVIDER_MATCH = "provider_match"  # found by provider id
    EMAIL_LINKED = "email_linked"      # found by email, provider id linked now
    EMAIL_MATCH = "email_match"        # found by email, already linked to another provider id
    CREATED = "created"                # new account


@dataclass(frozen=True)
class OAuthResolution:
    user: User
    outcome: OAuthOutcome


def _mint(user: User) -> tuple[TokenPair, str]:
    pair = TokenPair(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )
    return pair, hash_password(pair.refresh_token)


def issue_session(user: User) -> TokenPair:
    """Issue a fresh pair and make its refresh token the user's only valid one."""
    pair, digest = _mint(user)
    user.refresh_token_hash = digest
    user.save()
    return pair


def find_user_by_email(email: str) -> User | None:
    # every write path stores the normalized form, so the index serves this lookup
    session = storage.get_session()
    return session.query(User).filter(User.email == normalize_email(email)).first()


def _missing(token) -> bool:
    return token is None or token == ""


def login(email: str | None, password: str | None) -> tuple[TokenPair, User]:
    if not email or not password:
        raise ValidationError("email and password are required")

    user = find_user_by_email(email)
    # unknown email and wrong password must be indistinguishable, in timing too
    digest = user.password_hash if user else placeholder_hash()
    if not verify_password(password, digest) or not user:
        logger.warning("login rejected")
        raise InvalidCredentials()

    pair = issue_session(user)
    logger.info("login user_id=%s", user.id)
    return pair, user


def _subject_from(token: str) -> str | None:
    """Return the user id a refresh token was issued for, or None if it cannot be trusted."""
    try:
        claims = decode_token(token, expected_type=REFRESH)
    except TokenError as exc:
        logger.info("refresh token rejected: %s", exc)
        return None
    subject = claims.get("sub")
    if not is_valid_id(subject):
        return None
    return subject


def refresh(refresh_token: str | None) -> TokenPair:
    """
    Rotate a refresh token: the presented token is consumed and a new pair is
    returned. Fails with InvalidToken for anything but the user's current token.
    """
    if _missing(refresh_token):
        raise ValidationError("refreshToken is required")

    subject = _subject_from(refresh_token)
    if subject is None:
        raise InvalidToken()

    session = storage.get_session()
    user = session.get(User, subject)
    if not user or not user.has_session:
        raise InvalidToken()

    stored_hash = user.refresh_token_hash
    if not verify_password(refresh_token, stored_hash):
        logger.warning("stale refresh token presented user_id=%s", user.id)
        raise InvalidToken()

    pair, digest = _mint(user)
    # compare-and-swap: only the request that still sees stored_hash may rotate
    swapped = (
        session.query(User)
        .filter(User.id == user.id, User.refresh_token_hash == stored_hash)
        .update({User.refresh_token_hash: digest}, synchronize_session="fetch")
    )
    if swapped != 1:
        storage.rollback()
        logger.warning("concurrent refresh lost the race user_id=%s", user.id)
        raise InvalidToken()
    storage.save()
    logger.info("refresh user_id=%s", user.id)
    return pair


def logout(refresh_token: str | None) -> None:
    """
    Revoke the session the token belongs to. Fails open: nothing about the
    token or the account is revealed to the caller.
    """
    if _missing(refresh_token):
        raise ValidationError("refreshToken is required")

    subject = _subject_from(refresh_token)
    if subject is None:
        return

    session = storage.get_session()
    try:
        revoked = (
            session.query(User)
            .filter(User.id == subject)
            .update({User.refresh_token_hash: None}, synchronize_session="fetch")
        )
        storage.save()
    except Exception:
        logger.exception("logout failed to revoke session user_id=%s", subject)
        return
    if revoked:
        logger.info("logout user_id=%s", subject)


def _username_for(email: str, username: str | None) -> str:
    return (username or email.split("@")[0] or "user").strip() or "user"


def resolve_oauth_user(
    provider: str,
    provider_id: str,
    email: str | None = None,
    username: str | None = None,
) -> OAuthResolution:
    """
    Find or create the account behind a provider identity.
    Lookup order: provider id, then email (linking if unlinked), then create.
    """
    field = PROVIDER_FIELDS.get(provider)
    if field is None:
        raise ValidationError(f"Unsupported provider: {provider}")
    if not provider_id:
        raise ValidationError("provider id is required")

    session = storage.get_session()
    column = getattr(User, field)

    user = session.query(User).filter(column == provider_id).first()
    if user:
        return OAuthResolution(user, OAuthOutcome.PROVIDER_MATCH)

    if email:
        user = find_user_by_email(email)
        if user:
            if getattr(user, field):
                return OAuthResolution(user, OAuthOutcome.EMAIL_MATCH)
            setattr(user, field, provider_id)
            user.save()
            return OAuthResolution(user, OAuthOutcome.EMAIL_LINKED)

    if not email:
        raise MissingProviderEmail()

    user = User(
        username=_username_for(email, username),
        email=normalize_email(email),
        # OAuth accounts never log in with a password
        password_hash=hash_password(secrets.token_urlsafe(32)),
    )
    setattr(user, field, provider_id)
    storage.new(user)
    try:
        storage.save()
    except IntegrityError:
        # a concurrent first login created the account
        existing = session.query(User).filter(column == provider_id).first()
        if existing is None:
            raise
        return OAuthResolution(existing, OAuthOutcome.PROVIDER_MATCH)
    return OAuthResolution(user, OAuthOutcome.CREATED)


def oauth_upsert_and_issue(
    provider: str,
    provider_id: str,
    email: str | None = None,
    username: str | None = None,
) -> tuple[TokenPair, OAuthResolution]:
    resolution = resolve_oauth_user(provider, provider_id, email=email, username=username)
    pair = issue_session(resolution.user)
    logger.info(
        "oauth login provider=%s outcome=%s user_id=%s",
        provider, resolution.outcome.value, resolution.user.id,
    )
    return pair, resolution
