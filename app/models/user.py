"""
User model - an account of the calendar assistant.
Users authenticate with email/password; their calendar lives in Google Calendar.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class User(Base):
    """
    SQLAlchemy ORM model for the 'users' table.

    Besides credentials, a user carries the timezone and locale used to
    interpret phrases like "내일 3시" and to pick the reply language.
    """

    __tablename__ = "users"

    # ---------------------------------------------------------------------------
    # PRIMARY KEY
    # ---------------------------------------------------------------------------
    # The UUID doubles as the assistant session id (see /ai routes)
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # ---------------------------------------------------------------------------
    # USER CREDENTIALS
    # ---------------------------------------------------------------------------
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # ---------------------------------------------------------------------------
    # PROFILE INFORMATION
    # ---------------------------------------------------------------------------
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # timezone: IANA name, e.g. "Asia/Seoul"; None means settings.DEFAULT_TIMEZONE
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # locale: "ko" or "en"; None means detect from each message
    locale: Mapped[str | None] = mapped_column(String(8), nullable=True)

    # ---------------------------------------------------------------------------
    # ACCOUNT STATUS
    # ---------------------------------------------------------------------------
    is_active: Mapped[bool] = mapped_column(default=True)

    # ---------------------------------------------------------------------------
    # TIMESTAMPS
    # ---------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
