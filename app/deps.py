"""
Dependencies module - reusable FastAPI dependencies for route handlers.

- get_current_user: validates the JWT issued by /auth/login
- get_google_access_token: reads the caller's Google OAuth token
- get_calendar_client: a GoogleCalendarClient for that token
"""

import uuid

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.environments.google.calendar.client import GoogleCalendarClient
from app.models.user import User

# ---------------------------------------------------------------------------
# SECURITY SCHEME
# ---------------------------------------------------------------------------
# HTTPBearer extracts "Authorization: Bearer <token>" and answers 401/403
# on its own when the header is missing.
security = HTTPBearer()

# Header carrying the Google OAuth access token. Obtaining and refreshing
# it is the client's job; the server only forwards it to Google Calendar.
GOOGLE_TOKEN_HEADER = "X-Google-Access-Token"


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Validate the JWT and return the authenticated user.

    Raises:
        401 Unauthorized: token invalid or expired, or user not found
        403 Forbidden: user account is deactivated
    """
    token = credentials.credentials

    # Same error for every failure so callers can't probe which check failed
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id: str | None = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    try:
        uid = uuid.UUID(user_id)
    except ValueError:
        raise credentials_exception

    user = db.query(User).filter(User.id == uid).first()
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    return user


def get_google_access_token(
    x_google_access_token: str | None = Header(default=None, alias=GOOGLE_TOKEN_HEADER),
) -> str:
    """
    Return the Google OAuth token sent with the request.

    Raises:
        401 Unauthorized: header missing or blank
    """
    token = (x_google_access_token or "").strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {GOOGLE_TOKEN_HEADER} header",
        )
    return token


def get_calendar_client(
    access_token: str = Depends(get_google_access_token),
) -> GoogleCalendarClient:
    """Google Calendar client acting on behalf of the caller."""
    return GoogleCalendarClient(access_token)
