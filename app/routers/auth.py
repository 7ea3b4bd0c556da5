"""
Auth router - registration and login.
These are public endpoints (no authentication required).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.security import create_access_token, hash_password, verify_password
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import Token, UserLogin, UserRegister
from app.schemas.user import UserOut


logger = logging.getLogger("calendar_ai.routers.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# POST /auth/register - Create a new user account
# ---------------------------------------------------------------------------
@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    """
    Register a new user account.

    timezone and locale are optional; without them the server default
    timezone is used and the reply language follows each message.

    Raises:
        400 Bad Request: email already registered
    """
    existing = db.query(User).filter(User.email == payload.email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = User(
        email=payload.email,
        hashed_password=hash_password(payload.password),
        display_name=payload.display_name,
        timezone=payload.timezone,
        locale=payload.locale,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Registered user {user.id}")
    return user


# ---------------------------------------------------------------------------
# POST /auth/login - Authenticate and get a JWT token
# ---------------------------------------------------------------------------
@router.post("/login", response_model=Token)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate and return a JWT access token.

    The client sends it as "Authorization: Bearer <token>" together with
    its Google token in X-Google-Access-Token on every /ai request.

    Raises:
        401 Unauthorized: unknown email or wrong password
        403 Forbidden: account is deactivated
    """
    user = db.query(User).filter(User.email == payload.email).first()

    # One message for both cases so emails can't be enumerated
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    return Token(access_token=create_access_token(subject=str(user.id)))
