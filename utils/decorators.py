from __future__ import annotations
import logging
from functools import wraps
from flask import request, g
from utils.security import ACCESS, TokenError, decode_token
from models import storage
from models.user import User
from models.schemas.common import is_valid_id
from services.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def jwt_required():
    """Authenticate the request with a Bearer access token; sets g.current_user."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                raise AuthenticationError("Authentication required")
            token = auth.split(" ", 1)[1].strip()
            try:
                decoded = decode_token(token, expected_type=ACCESS)
            except TokenError as e:
                logger.info("access token rejected: %s", e)
                raise AuthenticationError("Invalid or expired token")

            user_id = decoded.get("sub")
            user = storage.get(User, user_id) if is_valid_id(user_id) else None
            if not user:
                raise AuthenticationError("Invalid or expired token")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator
