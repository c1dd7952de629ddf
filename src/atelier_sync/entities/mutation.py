"""Mutation outcome and notification entities."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class OutcomeStatus(StrEnum):
    """How a mutation settled."""

    SUCCESS = "success"
    FAILED = "failed"  # application-level failure, HTTP success
    ERROR = "error"  # transport failure


@dataclass(frozen=True)
class MutationOutcome:
    """Normalized result of a mutation call.

    Attributes:
        kind: The mutation kind
        status: success, failed (application) or error (transport)
        message: Server message, or a fallback for failures
        payload: Response payload (empty for transport errors)
        error: The transport error, if any
    """

    kind: str
    status: OutcomeStatus
    message: str
    payload: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


@dataclass(frozen=True)
class Notification:
    """Transient user-facing message."""

    title: str
    message: str
    variant: str = "default"  # or "destructive"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"
