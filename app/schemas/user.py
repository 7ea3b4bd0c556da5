"""
User schemas - what a user's profile looks like over the API.
The password hash never leaves the database layer.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from app.ai.prompts.helpers import SUPPORTED_LANGUAGES
from app.core.timeutils import is_valid_timezone


class UserOut(BaseModel):
    """
    Schema for user data in API responses.

    Example response:
    {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "email": "minji@example.com",
        "display_name": "Minji",
        "timezone": "Asia/Seoul",
        "locale": "ko",
        "is_active": true,
        "created_at": "2025-12-02T10:30:00Z"
    }
    """
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: EmailStr
    display_name: str | None
    timezone: str | None = None
    locale: str | None = None
    is_active: bool
    created_at: datetime


class UserUpdate(BaseModel):
    """Schema for PATCH /users/me. Omitted fields are left unchanged."""
    display_name: str | None = None
    timezone: str | None = None
    locale: str | None = None

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str | None) -> str | None:
        if value is not None and not is_valid_timezone(value):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("locale")
    @classmethod
    def _supported_locale(cls, value: str | None) -> str | None:
        if value is not None and value not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported locale: {value}")
        return value
