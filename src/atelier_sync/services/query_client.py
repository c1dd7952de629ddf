"""Query client: the object screens talk to.

This service orchestrates the store (QueryCache) and the executor
(FetchExecutor). It is created explicitly and passed around, so several
isolated clients can live side by side.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine, Sequence
from typing import Any

from atelier_sync.config import settings
from atelier_sync.entities import Listener, QueryFetcher, QueryKey, QueryState, normalize_key
from atelier_sync.models import SyncMetrics

from .fetch_executor import FetchExecutor
from .query_cache import QueryCache

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by QueryClient.subscribe. Call or use ``close()`` to stop."""

    def __init__(self, client: "QueryClient", key: QueryKey, listener: Listener) -> None:
        self._client = client
        self.key = key
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if self._active:
            self._active = False
            self._client.unsubscribe(self.key, self._listener)

    __call__ = close


class QueryClient:
    """Cache store + fetch executor behind one API.

    Example:
        ```python
        client = QueryClient.create()
        sub = client.subscribe(
            query_keys.orders_client(season, client_id, bon_id, params),
            listener=render,
            fetcher=api.fetcher(path),
        )
        await client.invalidate((query_keys.ORDERS_CLIENT, season, client_id))
        sub.close()
        ```
    """

    def __init__(
        self,
        cache: QueryCache | None = None,
        executor: FetchExecutor | None = None,
        metrics: SyncMetrics | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            cache: Entry store. Defaults to a new QueryCache.
            executor: Fetch executor bound to ``cache``. Defaults to a new one.
            metrics: Shared counters. Defaults to the executor's.
        """
        self._cache = cache if cache is not None else QueryCache()
        if metrics is None:
            metrics = executor.metrics if executor is not None else SyncMetrics()
        self._metrics = metrics
        self._executor = executor if executor is not None else FetchExecutor(self._cache, metrics=self._metrics)
        self._background: set[asyncio.Task] = set()

    @classmethod
    def create(
        cls,
        stale_time: float | None = None,
        gc_time: float | None = None,
        retry: int | None = None,
        clock: Callable[[], float] | None = None,
    ) -> "QueryClient":
        """Factory method to create a QueryClient with defaults from settings.

        Args:
            stale_time: Freshness window in seconds. If None, uses settings.
            gc_time: Eviction window in seconds. If None, uses settings.
            retry: Retries per failed fetch. If None, uses settings.
            clock: Monotonic clock override (tests).

        Returns:
            Configured QueryClient
        """
        cache_kwargs: dict[str, Any] = {"gc_time": settings.gc_time if gc_time is None else gc_time}
        if clock is not None:
            cache_kwargs["clock"] = clock
        cache = QueryCache(**cache_kwargs)
        metrics = SyncMetrics()
        executor = FetchExecutor(
            cache,
            stale_time=settings.stale_time if stale_time is None else stale_time,
            retry=settings.retry if retry is None else retry,
            metrics=metrics,
        )
        return cls(cache=cache, executor=executor, metrics=metrics)

    def subscribe(
        self,
        key: Sequence[Any],
        listener: Listener,
        fetcher: QueryFetcher | None = None,
        *,
        enabled: bool = True,
    ) -> Subscription:
        """Subscribe to a key, fetching in the background if needed.

        A stale entry (invalidated while nobody watched it) is refetched
        here, on the next subscribe.

        Args:
            key: The query key
            listener: Called with a QueryState after each change
            fetcher: Zero-argument coroutine function producing the data
            enabled: When False, subscribe without fetching

        Returns:
            A Subscription handle
        """
        entry = self._cache.subscribe(key, listener)
        if fetcher is not None:
            entry.fetcher = fetcher
        if enabled and entry.fetcher is not None and self._executor.needs_fetch(entry):
            self._spawn(self._background_fetch(entry.key, force=False))
        return Subscription(self, entry.key, listener)

    def unsubscribe(self, key: Sequence[Any], listener: Listener) -> bool:
        """Remove a listener; returns True if it was registered."""
        return self._cache.unsubscribe(key, listener)

    async def fetch_query(self, key: Sequence[Any], fetcher: QueryFetcher | None = None, *, force: bool = False) -> Any:
        """Fetch (or serve fresh cached) data for ``key``. Errors propagate."""
        return await self._executor.fetch(key, fetcher, force=force)

    async def refetch(self, key: Sequence[Any]) -> Any:
        """Force a fetch with the entry's last fetcher."""
        return await self._executor.fetch(key, force=True)

    def get_query_data(self, key: Sequence[Any]) -> Any:
        """Get cached data for ``key`` (None if never loaded)."""
        return self._cache.get(key)

    def set_query_data(self, key: Sequence[Any], data: Any) -> QueryState:
        """Write data for ``key`` directly and notify subscribers."""
        return self._cache.set(key, data)

    def get_query_state(self, key: Sequence[Any]) -> QueryState | None:
        """Get an immutable snapshot of ``key``'s entry."""
        return self._cache.get_state(key)

    def find_states(self, prefix: Sequence[Any] = (), exact: bool = False) -> list[QueryState]:
        """Snapshot every entry in a region."""
        return [entry.snapshot() for entry in self._cache.find_all(prefix, exact=exact)]

    async def invalidate(self, prefix: Sequence[Any], exact: bool = False) -> int:
        """Mark a region stale and refetch the entries somebody is watching.

        Each subscribed entry is refetched exactly once, with its last
        fetcher. Unsubscribed entries stay stale until their next subscribe.

        Args:
            prefix: Leading key elements, or the literal key when exact
            exact: Match only the literal key

        Returns:
            Number of matched entries
        """
        matched = self._cache.invalidate(prefix, exact=exact)
        watched = [entry for entry in matched if entry.subscriber_count > 0 and entry.fetcher is not None]
        self._metrics.record_invalidation(len(matched), len(watched))
        logger.info(
            "Invalidated %s (exact=%s): %d matched, %d refetching",
            normalize_key(prefix),
            exact,
            len(matched),
            len(watched),
        )
        await asyncio.gather(*(self._background_fetch(entry.key, force=True) for entry in watched))
        return len(matched)

    def reset_query(self, key: Sequence[Any]) -> None:
        """Drop data for ``key``; subscribers stay registered."""
        self._cache.reset(key)

    def remove(self, key: Sequence[Any]) -> bool:
        """Evict ``key`` from the cache."""
        return self._cache.evict(key)

    def collect_garbage(self, now: float | None = None) -> int:
        """Evict inactive entries older than gc_time."""
        return self._cache.collect_garbage(now)

    def clear(self, refetch: bool = True) -> None:
        """Drop every cached entry (e.g. after the session expired).

        Entries that are still subscribed keep their subscribers and fetcher
        and are reset to idle, so later invalidations still reach them.

        Args:
            refetch: Refetch the subscribed entries in the background. The
                session-expiry hook passes False: refetching with an expired
                token would fail again.
        """
        logger.info("Clearing query cache (%d entries)", len(self._cache))
        kept = self._cache.clear()
        if not refetch:
            return
        for entry in [entry for entry in kept if entry.fetcher is not None]:
            self._spawn(self._background_fetch(entry.key, force=True))

    async def collect_garbage_periodically(self, interval: float) -> None:
        """Run ``collect_garbage`` every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            evicted = self.collect_garbage()
            if evicted:
                logger.info("Evicted %d inactive cache entries", evicted)

    async def settle(self) -> None:
        """Wait until all background fetches spawned by this client finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with entry counts, settings and counters
        """
        entries = self._cache.find_all()
        return {
            "entries": len(entries),
            "subscribed_entries": sum(1 for entry in entries if entry.subscriber_count > 0),
            "fetching_entries": sum(1 for entry in entries if entry.is_fetching),
            "stale_time": self._executor.stale_time,
            "gc_time": self._cache.gc_time,
            "retry": self._executor.retry,
            **self._metrics.to_dict(),
        }

    async def _background_fetch(self, key: QueryKey, force: bool) -> None:
        # Errors are recorded on the entry; one failing key never blocks another
        try:
            await self._executor.fetch(key, force=force)
        except Exception as error:
            logger.debug("Background fetch for %r failed: %s", key, error)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    @property
    def cache(self) -> QueryCache:
        """Get the underlying store (for testing)."""
        return self._cache

    @property
    def executor(self) -> FetchExecutor:
        """Get the underlying executor (for testing)."""
        return self._executor

    @property
    def metrics(self) -> SyncMetrics:
        """Get the shared counters."""
        return self._metrics
