"""
Environments Module - External Service Integrations

environments/
├── __init__.py           # Module exports
├── base.py               # Exceptions and the EnvironmentService contract
└── google/
    └── calendar/         # Google Calendar API v3 client and schemas
"""

from app.environments.base import (
    EnvironmentService,
    EnvironmentError,
    APIError,
    AuthenticationError,
    ScopeNotGrantedError,
)

__all__ = [
    "EnvironmentService",
    "EnvironmentError",
    "APIError",
    "AuthenticationError",
    "ScopeNotGrantedError",
]
