"""
Security utilities - password hashing and JWT token creation.
Used by the /auth endpoints and by the get_current_user dependency.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt  # python-jose library for JWT encoding/decoding
from passlib.context import CryptContext

from app.core.config import settings

# ---------------------------------------------------------------------------
# PASSWORD HASHING CONTEXT
# ---------------------------------------------------------------------------
# bcrypt hashes carry their own salt; deprecated="auto" keeps old hashes
# verifiable if the scheme list ever grows.
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt. Only the hash is stored."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a login attempt against the stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token for the assistant API.

    Args:
        subject: The user's UUID as a string, stored in the "sub" claim
        expires_delta: Optional lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        The encoded token ("xxxxx.yyyyy.zzzzz")

    The payload is only signed, not encrypted. Never put calendar data
    or the Google access token in it.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": subject, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
