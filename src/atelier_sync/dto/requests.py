"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class InvalidateRequest(BaseModel):
    """Request DTO for imperative invalidation.

    The handler will convert this to a QueryClient.invalidate call.
    """

    prefix: list[Any] = Field(..., description="Leading key elements, e.g. ['ordersClient', 'S1', 'C1']", min_length=1)
    exact: bool = Field(False, description="Match only the literal key instead of the whole prefix")


class MutationRequest(BaseModel):
    """Request DTO for running a mutation."""

    variables: dict[str, Any] = Field(default_factory=dict, description="The mutation's input")
    context: dict[str, Any] = Field(
        default_factory=dict,
        description="Ambient values used by routes and invalidation rules (e.g. seasonId)",
    )
    label: str | None = Field(None, description="Notification title (defaults to the mutation kind)")
