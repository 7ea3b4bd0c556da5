"""
Auth schemas - Pydantic models for the /auth request and response bodies.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.ai.prompts.helpers import SUPPORTED_LANGUAGES
from app.core.timeutils import is_valid_timezone


class UserRegister(BaseModel):
    """
    Schema for POST /auth/register request body.

    Example request body:
    {
        "email": "minji@example.com",
        "password": "securePassword123",
        "display_name": "Minji",
        "timezone": "Asia/Seoul",
        "locale": "ko"
    }
    """
    email: EmailStr
    password: str = Field(..., min_length=8)
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


class UserLogin(BaseModel):
    """Schema for POST /auth/login request body."""
    email: EmailStr
    password: str


class Token(BaseModel):
    """
    Schema for POST /auth/login response.

    Clients send it back as: Authorization: Bearer <access_token>
    """
    access_token: str
    token_type: str = "bearer"
