"""
A+ Marketplace Backend — Password Hashing & Access Tokens
===========================================================

What:  bcrypt password hashing and HS256 JWT access tokens.
Who:   UserService (register/login) and the bearer guard in routes/deps.py.

Token claims: sub (user id), email, full_name, role, iat, exp.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt

from aplus.config import settings
from aplus.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user: Any) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_ttl_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        AuthenticationError: expired, malformed, or missing `sub`.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(code="auth.token_expired")
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected bearer token: %s", e)
        raise AuthenticationError(code="auth.invalid_token")

    if not payload.get("sub"):
        raise AuthenticationError(code="auth.invalid_token")
    return payload
