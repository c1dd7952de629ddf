"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class QueryStateResponse(BaseModel):
    """Snapshot of one cache entry."""

    key: list[Any] = Field(..., description="The normalized query key")
    status: str = Field(..., description="idle, loading, success, error or stale")
    data: Any = Field(None, description="Last successfully fetched data")
    error: str | None = Field(None, description="Message of the last fetch error")
    last_updated_at: float | None = Field(None, description="Monotonic time of the last successful write")
    subscriber_count: int = Field(..., description="Number of active subscribers", ge=0)
    is_fetching: bool = Field(..., description="Whether a fetch is in flight")


class InvalidateResponse(BaseModel):
    """Response DTO for invalidation."""

    prefix: list[Any] = Field(..., description="The invalidated prefix")
    exact: bool = Field(..., description="Whether only the literal key was matched")
    matched: int = Field(..., description="Number of entries marked stale", ge=0)


class CursorListResponse(BaseModel):
    """Accumulated pages of a cursor list."""

    resource: str = Field(..., description="Cursor resource name")
    key: list[Any] | None = Field(None, description="Cache key of the list")
    status: str = Field(..., description="idle, loading, ready, loading_more or error")
    search: str = Field("", description="Applied search term")
    items: list[Any] = Field(default_factory=list, description="Items across all pages, deduplicated by id")
    page_count: int = Field(0, description="Number of loaded pages", ge=0)
    next_cursor: str | None = Field(None, description="Cursor of the next page")
    has_next_page: bool = Field(False, description="Whether more pages exist")
    is_fetching_next_page: bool = Field(False, description="Whether a follow-up page is loading")
    error: str | None = Field(None, description="Message of the last list error")


class MutationResponse(BaseModel):
    """Response DTO for a mutation."""

    kind: str = Field(..., description="The mutation kind")
    status: str = Field(..., description="success, failed (application) or error (transport)")
    message: str = Field(..., description="Server message or fallback")
    payload: dict[str, Any] = Field(default_factory=dict, description="Response payload")


class NotificationResponse(BaseModel):
    """Single notification."""

    title: str = Field(..., description="Notification title")
    message: str = Field(..., description="Notification text")
    variant: str = Field("default", description="'default' or 'destructive'")


class StatsResponse(BaseModel):
    """Response DTO for cache statistics."""

    entries: int = Field(..., description="Total number of cache entries", ge=0)
    subscribed_entries: int = Field(..., description="Entries with at least one subscriber", ge=0)
    fetching_entries: int = Field(..., description="Entries with a fetch in flight", ge=0)
    stale_time: float = Field(..., description="Freshness window in seconds", ge=0.0)
    gc_time: float = Field(..., description="Eviction window for unsubscribed entries in seconds", ge=0.0)
    retry: int = Field(..., description="Retries per failed fetch", ge=0)
    network_calls: int = Field(0, ge=0)
    deduplicated_calls: int = Field(0, ge=0)
    dedup_rate: float = Field(0.0, ge=0.0, le=1.0)
    cache_hits: int = Field(0, ge=0)
    fetch_errors: int = Field(0, ge=0)
    invalidations: int = Field(0, ge=0)
    invalidated_entries: int = Field(0, ge=0)
    refetches: int = Field(0, ge=0)
    dropped_responses: int = Field(0, ge=0)


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy'")
    api_url: str = Field(..., description="Workshop API the console talks to")
    entries: int = Field(..., description="Number of cache entries", ge=0)
