"""Error taxonomy shared by the API client and the dashboard state engine."""

from __future__ import annotations


class CollectClientError(Exception):
    """Base error carrying a human-readable message for the UI layer."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CollectClientError):
    """Raised when local input is rejected before any network call."""


class AuthError(CollectClientError):
    """Raised when login, registration or a protected access is rejected."""


class NotFoundError(CollectClientError):
    """Raised when the collaborator answers with a 404 for a lookup."""


class TransientNetworkError(CollectClientError):
    """Raised for every other failed request; never retried automatically."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
