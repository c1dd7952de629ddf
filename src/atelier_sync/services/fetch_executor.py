"""Fetch executor: runs query fetchers with per-key request deduplication."""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from atelier_sync.entities import CacheEntry, QueryFetcher, QueryStatus
from atelier_sync.models import SyncMetrics

from .query_cache import QueryCache

logger = logging.getLogger(__name__)


class FetchExecutor:
    """Perform remote reads on behalf of cache entries.

    All callers asking for the same key within one staleness epoch share a
    single in-flight fetch. A fetch started before an invalidation never
    overwrites the result of the fetch started after it.
    """

    def __init__(
        self,
        cache: QueryCache,
        stale_time: float = 0.0,
        retry: int = 0,
        metrics: SyncMetrics | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            cache: Store that receives results and errors
            stale_time: Seconds fetched data is served without a network call
            retry: Extra attempts after a failed fetch (0 disables retry)
            metrics: Counters shared with the owning client
        """
        self._cache = cache
        self._stale_time = stale_time
        self._retry = retry
        self._metrics = metrics if metrics is not None else SyncMetrics()

    def needs_fetch(self, entry: CacheEntry, now: float | None = None) -> bool:
        """Decide whether serving ``entry`` requires a network call."""
        if entry.last_updated_at is None:
            return True
        if entry.status in (QueryStatus.STALE, QueryStatus.ERROR, QueryStatus.IDLE):
            return True
        now = self._cache.now() if now is None else now
        return now - entry.last_updated_at >= self._stale_time

    async def fetch(
        self,
        key: Sequence[Any],
        fetcher: QueryFetcher | None = None,
        *,
        force: bool = False,
    ) -> Any:
        """Return data for ``key``, fetching it when needed.

        Args:
            key: The query key
            fetcher: Zero-argument coroutine function; remembered on the entry
                and reused for later refetches
            force: Fetch even if cached data is still fresh

        Returns:
            The fetched (or fresh cached) data

        Raises:
            ValueError: If no fetcher is known for the key
            Exception: Whatever the fetcher raised (also recorded on the entry)
        """
        entry = self._cache.build(key)
        if fetcher is not None:
            entry.fetcher = fetcher
        if entry.fetcher is None:
            raise ValueError(f"No fetcher registered for query key {entry.key!r}")

        if not force and not self.needs_fetch(entry):
            self._metrics.record_hit()
            return entry.data

        return await self._shared_fetch(entry)

    async def _shared_fetch(self, entry: CacheEntry) -> Any:
        if entry.is_fetching and entry.in_flight_epoch == entry.epoch:
            self._metrics.record_dedup()
            logger.debug("Joining in-flight fetch for %r", entry.key)
            return await asyncio.shield(entry.in_flight)

        task = asyncio.ensure_future(self._run(entry, entry.epoch, entry.fetcher))
        entry.in_flight = task
        entry.in_flight_epoch = entry.epoch
        self._cache.mark_loading(entry)
        return await asyncio.shield(task)

    async def _run(self, entry: CacheEntry, epoch: int, fetcher: QueryFetcher) -> Any:
        this_task = asyncio.current_task()
        self._metrics.record_call()
        try:
            data = await self._call_with_retry(entry, fetcher)
        except Exception as error:
            self._metrics.record_error()
            if entry.in_flight is this_task:
                entry.in_flight = None
                self._cache.set_error(entry.key, error)
            logger.warning("Fetch failed for %r: %s", entry.key, error)
            raise

        if entry.in_flight is not this_task:
            # A newer epoch started its own fetch; this result is outdated
            self._metrics.record_drop()
            logger.debug("Discarding outdated response for %r", entry.key)
            return data

        entry.in_flight = None
        if epoch == entry.epoch:
            self._cache.set(entry.key, data)
        else:
            # Invalidated mid-flight with nobody to refetch: keep the data, stay stale
            entry.data = data
            entry.error = None
            entry.last_updated_at = self._cache.now()
            self._cache.notify(entry)
        return data

    async def _call_with_retry(self, entry: CacheEntry, fetcher: QueryFetcher) -> Any:
        attempt = 0
        while True:
            try:
                return await fetcher()
            except Exception as error:
                attempt += 1
                if attempt > self._retry:
                    raise
                logger.info("Retrying %r after error (%d/%d): %s", entry.key, attempt, self._retry, error)

    @property
    def stale_time(self) -> float:
        """Get the freshness window in seconds."""
        return self._stale_time

    @property
    def retry(self) -> int:
        """Get the number of retries per fetch."""
        return self._retry

    @property
    def metrics(self) -> SyncMetrics:
        """Get the shared counters."""
        return self._metrics
