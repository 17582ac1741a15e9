"""
security helpers:
- Argon2 hashing via argon2-cffi (login passwords and refresh tokens at rest)
- JWT creation/verification via PyJWT, one secret per token type
- JTI generation so every minted token is distinct
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from flask import current_app

ACCESS = "access"
REFRESH = "refresh"

_SECRET_KEYS = {
    ACCESS: ("JWT_ACCESS_SECRET", "ACCESS_TOKEN_EXPIRES"),
    REFRESH: ("JWT_REFRESH_SECRET", "REFRESH_TOKEN_EXPIRES"),
}


class TokenError(Exception):
    """Raised when a JWT is malformed, badly signed, expired or of the wrong type."""


@lru_cache(maxsize=4)
def _hasher(time_cost: int, memory_cost: int, parallelism: int) -> PasswordHasher:
    return PasswordHasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)


def _cost() -> tuple[int, int, int]:
    cfg = current_app.config
    return cfg["ARGON2_TIME_COST"], cfg["ARGON2_MEMORY_COST"], cfg["ARGON2_PARALLELISM"]


def _ph() -> PasswordHasher:
    return _hasher(*_cost())


@lru_cache(maxsize=4)
def _placeholder_digest(time_cost: int, memory_cost: int, parallelism: int) -> str:
    return _hasher(time_cost, memory_cost, parallelism).hash(uuid.uuid4().hex)


def placeholder_hash() -> str:
    """Digest no caller can match; verifying against it costs the same as a real check."""
    return _placeholder_digest(*_cost())


def hash_password(password: str) -> str:
    """Hash a plaintext secret using Argon2
    """
    return _ph().hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext secret against an Argon2 digest
    """
    if not password or not password_hash:
        return False
    try:
        return _ph().verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _create_token(subject: str, token_type: str) -> str:
    secret_key, expires_key = _SECRET_KEYS[token_type]
    now = _now()
    exp = now + current_app.config[expires_key]
    payload = {
        "iss": current_app.config.get("JWT_ISSUER", "social-backend"),
        "sub": str(subject),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "type": token_type,
        "jti": generate_jti(),
    }
    return jwt.encode(payload, current_app.config[secret_key], algorithm=current_app.config["JWT_ALGORITHM"])


def create_access_token(subject: str) -> str:
    """Short-lived bearer token (ACCESS_TOKEN_EXPIRES) signed with JWT_ACCESS_SECRET."""
    return _create_token(subject, ACCESS)


def create_refresh_token(subject: str) -> str:
    """Long-lived token (REFRESH_TOKEN_EXPIRES) signed with JWT_REFRESH_SECRET."""
    return _create_token(subject, REFRESH)


def decode_token(token: str, expected_type: str = ACCESS) -> Dict[str, Any]:
    """
    Decode and validate a JWT against the secret of expected_type.
    Raises TokenError on invalid signature, expiry or a type mismatch.
    """
    if expected_type not in _SECRET_KEYS:
        raise ValueError(f"Unknown token type: {expected_type}")
    if not isinstance(token, str) or not token:
        raise TokenError("Invalid token: empty")
    secret_key, _ = _SECRET_KEYS[expected_type]
    try:
        decoded = jwt.decode(
            token,
            current_app.config[secret_key],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise TokenError(f"Invalid token: {exc}")

    if decoded.get("type") != expected_type:
        raise TokenError("Wrong token type")
    return decoded
