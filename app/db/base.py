"""
Declarative base - every ORM model in the assistant inherits from Base.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base shared by all models."""
    pass
