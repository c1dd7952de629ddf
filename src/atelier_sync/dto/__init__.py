"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import InvalidateRequest, MutationRequest
from .responses import (
    CursorListResponse,
    HealthCheckResponse,
    InvalidateResponse,
    MutationResponse,
    NotificationResponse,
    QueryStateResponse,
    StatsResponse,
)

__all__ = [
    "InvalidateRequest",
    "MutationRequest",
    "QueryStateResponse",
    "InvalidateResponse",
    "CursorListResponse",
    "MutationResponse",
    "NotificationResponse",
    "StatsResponse",
    "HealthCheckResponse",
]
