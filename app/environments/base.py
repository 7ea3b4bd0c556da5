"""
Base classes and interfaces for Environment integrations.

An environment is an external service the assistant acts on. Today that
is Google Calendar; the contract below keeps handlers independent of it.

Obtaining OAuth tokens is the caller's job: services receive a ready
access token and only report whether it still works.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Any


# ---------------------------------------------------------------------------
# CUSTOM EXCEPTIONS
# ---------------------------------------------------------------------------
# Handlers catch these to turn API failures into user-facing messages.


class EnvironmentError(Exception):
    """Base exception for all environment-related errors."""
    pass


class APIError(EnvironmentError):
    """Raised when an API call to the provider fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class AuthenticationError(APIError):
    """Raised when the provider rejects the access token (HTTP 401)."""
    pass


class ScopeNotGrantedError(APIError):
    """Raised when the token lacks the calendar scope (HTTP 403)."""
    pass


class EnvironmentService(ABC):
    """
    Abstract base class for API services within a provider.

    Example Implementation:
        class GoogleCalendarClient(EnvironmentService):
            service_name = "calendar"
            required_scopes = ["https://www.googleapis.com/auth/calendar.events"]

            async def validate_access(self) -> bool:
                ...
    """

    # Unique identifier for this service within the provider
    service_name: str = ""

    # OAuth scopes required for this service to function
    required_scopes: List[str] = []

    @abstractmethod
    async def validate_access(self) -> bool:
        """
        Verify the service's access token is still accepted.

        Returns:
            True if token is valid and has required scopes
        """
        pass
