"""
Password hashing and session tokens.

Passwords are hashed with bcrypt. Sessions are stateless HS256 JWTs kept in
an HTTP-only cookie; the payload carries the user id and an ISO expiry
alongside the standard exp/iat claims.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import Response

from mnemo.core.config import Settings, resolve_auth_secret, settings as default_settings

logger = logging.getLogger(__name__)


# ================================
# Passwords
# ================================

def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password with bcrypt.

    Args:
        password: Plain-text password
        rounds: Cost factor (defaults to settings.bcrypt_rounds)

    Returns:
        str: bcrypt hash
    """
    salt = bcrypt.gensalt(rounds=rounds or default_settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a stored bcrypt hash."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"Stored password hash is malformed: {e}")
        return False


# ================================
# Session tokens
# ================================

class TokenStatus(Enum):
    """Status codes for token validation results."""
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass
class TokenResult:
    """Result of token validation."""
    status: TokenStatus
    user_id: Optional[int] = None
    payload: Optional[Dict[str, Any]] = None

    @property
    def is_valid(self) -> bool:
        return self.status == TokenStatus.VALID


def session_expiry(config: Optional[Settings] = None) -> datetime:
    config = config or default_settings
    return datetime.now(timezone.utc) + timedelta(hours=config.session_ttl_hours)


def create_session_token(user_id: int, expires: datetime, config: Optional[Settings] = None) -> str:
    """
    Sign a session token for a user.

    Args:
        user_id: Authenticated user
        expires: Absolute expiry (UTC)
        config: Settings holding the signing algorithm

    Returns:
        str: Encoded JWT
    """
    config = config or default_settings
    payload = {
        "user": {"id": user_id},
        "expires": expires.isoformat(),
        "exp": expires,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, resolve_auth_secret(config), algorithm=config.jwt_algorithm)


def decode_session_token(token: Optional[str], config: Optional[Settings] = None) -> TokenResult:
    """
    Verify a session token.

    Args:
        token: Encoded JWT from the session cookie
        config: Settings holding the signing algorithm

    Returns:
        TokenResult: VALID with the user id, or EXPIRED / INVALID
    """
    if not token:
        return TokenResult(status=TokenStatus.INVALID)

    config = config or default_settings
    try:
        payload = jwt.decode(token, resolve_auth_secret(config), algorithms=[config.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.debug("Session token expired")
        return TokenResult(status=TokenStatus.EXPIRED)
    except jwt.InvalidTokenError as e:
        logger.debug(f"Session token rejected: {e}")
        return TokenResult(status=TokenStatus.INVALID)

    user = payload.get("user")
    user_id = user.get("id") if isinstance(user, dict) else None
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        logger.debug("Session token has no user id")
        return TokenResult(status=TokenStatus.INVALID)

    return TokenResult(status=TokenStatus.VALID, user_id=user_id, payload=payload)


# ================================
# Cookies
# ================================

def set_session_cookie(response: Response, user_id: int, config: Optional[Settings] = None) -> str:
    """
    Issue a fresh session cookie on a response.

    Returns:
        str: The signed token
    """
    config = config or default_settings
    expires = session_expiry(config)
    token = create_session_token(user_id, expires, config)
    response.set_cookie(
        key=config.session_cookie_name,
        value=token,
        expires=expires,
        httponly=True,
        secure=config.is_production,
        samesite="lax",
        path="/",
    )
    return token


def clear_session_cookie(response: Response, config: Optional[Settings] = None) -> None:
    config = config or default_settings
    response.delete_cookie(
        key=config.session_cookie_name,
        path="/",
        httponly=True,
        secure=config.is_production,
        samesite="lax",
    )
