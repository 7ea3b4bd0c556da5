"""
Users router - the authenticated user's profile.

The profile's timezone and locale decide how "내일 3시" is read and
which language the assistant answers in.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import get_current_user
from app.models.user import User
from app.schemas.user import UserOut, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------------------------------------------------------
# GET /users/me - Get the current user's profile
# ---------------------------------------------------------------------------
@router.get("/me", response_model=UserOut)
def read_current_user(current_user: User = Depends(get_current_user)):
    """Profile of the authenticated user (never includes the password hash)."""
    return current_user


# ---------------------------------------------------------------------------
# PATCH /users/me - Update display name, timezone or locale
# ---------------------------------------------------------------------------
@router.patch("/me", response_model=UserOut)
def update_current_user(
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update the profile. Only fields present in the body change.

    Example:
    {
        "timezone": "America/New_York",
        "locale": "en"
    }
    """
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    return current_user
