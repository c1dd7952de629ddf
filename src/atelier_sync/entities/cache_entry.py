"""Cache entry domain entities."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .query_key import QueryKey


class QueryStatus(StrEnum):
    """Lifecycle status of a cache entry."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    STALE = "stale"


@dataclass(frozen=True)
class QueryState:
    """Immutable snapshot of a cache entry, handed to subscribers.

    Attributes:
        key: The normalized query key
        data: Last successfully fetched data (None if never loaded)
        status: Entry status
        error: Last fetch error, if the last fetch failed
        last_updated_at: Clock time of the last successful write
        subscriber_count: Number of active subscribers
        is_fetching: True while any fetch for this key is in flight
    """

    key: QueryKey
    data: Any
    status: QueryStatus
    error: BaseException | None
    last_updated_at: float | None
    subscriber_count: int
    is_fetching: bool = False

    @property
    def has_data(self) -> bool:
        return self.last_updated_at is not None

    @property
    def is_loading(self) -> bool:
        """No data yet and a fetch is running."""
        return self.is_fetching and not self.has_data

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.ERROR

    @property
    def is_stale(self) -> bool:
        return self.status == QueryStatus.STALE

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.SUCCESS


Listener = Callable[[QueryState], None]
QueryFetcher = Callable[[], Awaitable[Any]]


@dataclass(eq=False)
class CacheEntry:
    """Mutable cache entry. Owned by QueryCache, never handed to callers.

    ``epoch`` is bumped on each invalidation; a fetch started in an older
    epoch may not overwrite the result of a newer one.
    """

    key: QueryKey
    data: Any = None
    status: QueryStatus = QueryStatus.IDLE
    error: BaseException | None = None
    last_updated_at: float | None = None
    fetcher: QueryFetcher | None = None
    listeners: list[Listener] = field(default_factory=list)
    epoch: int = 0
    in_flight: asyncio.Future | None = None
    in_flight_epoch: int = -1
    inactive_since: float | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self.listeners)

    @property
    def is_fetching(self) -> bool:
        return self.in_flight is not None and not self.in_flight.done()

    def snapshot(self) -> QueryState:
        """Create an immutable view of the entry."""
        return QueryState(
            key=self.key,
            data=self.data,
            status=self.status,
            error=self.error,
            last_updated_at=self.last_updated_at,
            subscriber_count=self.subscriber_count,
            is_fetching=self.is_fetching,
        )
