"""Error taxonomy for the synchronization core.

Transport errors and application failures are both "no mutation occurred"
outcomes: they leave cached entries untouched and never trigger invalidation.
Validation errors are raised before anything is sent and are never cached.
"""

from typing import Any

DEFAULT_ERROR_MESSAGE = "Something went wrong"


class SyncError(Exception):
    """Base class for all synchronization errors."""

    def __init__(self, message: str | None = None) -> None:
        self.message = message or DEFAULT_ERROR_MESSAGE
        super().__init__(self.message)


class TransportError(SyncError):
    """Network or HTTP failure. Carries no usable payload."""

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApplicationFailure(SyncError):
    """HTTP success whose payload reports ``status == "failed"``."""

    def __init__(self, message: str | None = None, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class ValidationError(SyncError):
    """Input rejected at the mutation's origin."""

    def __init__(self, message: str | None = None, fields: dict[str, str] | None = None) -> None:
        super().__init__(message or "Invalid input")
        self.fields = fields or {}


class UnknownMutationError(SyncError, KeyError):
    """Raised when no invalidation rule exists for a mutation kind."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unknown mutation kind: {kind}")
        self.kind = kind

    def __str__(self) -> str:
        return self.message
