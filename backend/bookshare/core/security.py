"""
Credential hashing and session tokens.

Passwords are stored as bcrypt hashes. A session is a signed JWT whose
``sub`` claim is the user's ObjectId string; it travels either as a Bearer
header or in the http-only session cookie.
"""
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from bookshare.config import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Return the bcrypt hash stored on the user document."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def token_lifetime() -> timedelta:
    """Configured validity of a session token; also the cookie max-age."""
    return timedelta(minutes=get_settings().jwt_access_token_expire_minutes)


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """
    Sign a session token for a user.

    Args:
        user_id: User ObjectId as string, stored as ``sub``
        expires_delta: Override for the configured lifetime

    Returns:
        Encoded JWT
    """
    settings = get_settings()
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or token_lifetime()),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        JWTError: If token is invalid or expired
    """
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def read_subject(token: str) -> str:
    """
    Return the user id a token was issued for.

    Raises:
        JWTError: If the token is invalid, expired or has no subject
    """
    subject = decode_token(token).get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    return subject


__all__ = [
    "JWTError",
    "hash_password",
    "verify_password",
    "token_lifetime",
    "create_access_token",
    "decode_token",
    "read_subject",
]
