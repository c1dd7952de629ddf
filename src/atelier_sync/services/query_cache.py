"""Keyed store of query results.

The store owns every CacheEntry and is the only place entries change. It
knows nothing about the network: fetching is the FetchExecutor's job and
refetch-after-invalidation is driven by the QueryClient.
"""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from atelier_sync.entities import (
    CacheEntry,
    Listener,
    QueryKey,
    QueryState,
    QueryStatus,
    matches,
    normalize_key,
)

logger = logging.getLogger(__name__)


class QueryCache:
    """In-memory store of cache entries keyed by normalized query key.

    Instances are independent: create one per console session (or per test)
    and pass it by reference.

    Example:
        ```python
        cache = QueryCache(gc_time=300)
        cache.set(("clients", 1, 10, ""), {"clients": []})
        cache.invalidate(("clients",))
        cache.get_state(("clients", 1, 10, "")).is_stale  # True
        ```
    """

    def __init__(
        self,
        gc_time: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            gc_time: Seconds an entry with no subscribers is kept before it
                becomes evictable.
            clock: Monotonic time source (injectable for tests).
        """
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._gc_time = gc_time
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Sequence[Any]) -> bool:
        return normalize_key(key) in self._entries

    def keys(self) -> list[QueryKey]:
        """Return all stored keys in insertion order."""
        return list(self._entries)

    def build(self, key: Sequence[Any]) -> CacheEntry:
        """Get the entry for ``key``, creating an idle one if missing."""
        key = normalize_key(key)
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, inactive_since=self._clock())
            self._entries[key] = entry
        return entry

    def find(self, key: Sequence[Any]) -> CacheEntry | None:
        """Get the entry for ``key`` without creating it."""
        return self._entries.get(normalize_key(key))

    def find_all(self, prefix: Sequence[Any] = (), exact: bool = False) -> list[CacheEntry]:
        """Return every entry in the region described by ``prefix``."""
        prefix = normalize_key(prefix)
        if exact:
            entry = self._entries.get(prefix)
            return [entry] if entry is not None else []
        return [entry for key, entry in self._entries.items() if matches(key, prefix)]

    def get(self, key: Sequence[Any]) -> Any:
        """Get cached data for ``key``.

        Returns:
            The data, or None when the key was never loaded
        """
        entry = self.find(key)
        return entry.data if entry is not None else None

    def get_state(self, key: Sequence[Any]) -> QueryState | None:
        """Get an immutable snapshot of the entry for ``key``."""
        entry = self.find(key)
        return entry.snapshot() if entry is not None else None

    def set(self, key: Sequence[Any], data: Any) -> QueryState:
        """Store fresh data for ``key`` and notify subscribers.

        Args:
            key: The query key
            data: The new data (treated as an immutable snapshot)

        Returns:
            The resulting entry state
        """
        entry = self.build(key)
        entry.data = data
        entry.status = QueryStatus.SUCCESS
        entry.error = None
        entry.last_updated_at = self._clock()
        self.notify(entry)
        return entry.snapshot()

    def set_error(self, key: Sequence[Any], error: BaseException) -> QueryState:
        """Record a failed fetch. Existing data is kept."""
        entry = self.build(key)
        entry.status = QueryStatus.ERROR
        entry.error = error
        self.notify(entry)
        return entry.snapshot()

    def mark_loading(self, entry: CacheEntry) -> None:
        """Flag an entry with no data as loading."""
        if entry.last_updated_at is None and entry.status != QueryStatus.ERROR:
            entry.status = QueryStatus.LOADING
        self.notify(entry)

    def invalidate(self, prefix: Sequence[Any], exact: bool = False) -> list[CacheEntry]:
        """Mark every entry in the region as stale.

        Each matched entry starts a new staleness epoch. Entries are not
        refetched here; callers decide what to do with subscribed ones.

        Args:
            prefix: Leading key elements (or the literal key when exact)
            exact: Match only the literal key

        Returns:
            The matched entries
        """
        matched = self.find_all(prefix, exact=exact)
        for entry in matched:
            entry.epoch += 1
            entry.status = QueryStatus.STALE
            self.notify(entry)
        logger.debug("Invalidated %d entries under %r (exact=%s)", len(matched), tuple(prefix), exact)
        return matched

    def reset(self, key: Sequence[Any]) -> CacheEntry:
        """Drop data and error for ``key`` but keep its subscribers."""
        entry = self.build(key)
        entry.data = None
        entry.error = None
        entry.last_updated_at = None
        entry.status = QueryStatus.IDLE
        entry.epoch += 1
        self.notify(entry)
        return entry

    def subscribe(self, key: Sequence[Any], listener: Listener) -> CacheEntry:
        """Register ``listener`` for changes of ``key``.

        Returns:
            The (possibly new) entry
        """
        entry = self.build(key)
        entry.listeners.append(listener)
        entry.inactive_since = None
        return entry

    def unsubscribe(self, key: Sequence[Any], listener: Listener) -> bool:
        """Remove ``listener``. The entry becomes GC-eligible at zero subscribers.

        Returns:
            True if the listener was registered
        """
        entry = self.find(key)
        if entry is None or listener not in entry.listeners:
            return False
        entry.listeners.remove(listener)
        if not entry.listeners:
            entry.inactive_since = self._clock()
        return True

    def evict(self, key: Sequence[Any]) -> bool:
        """Remove an entry regardless of its state.

        Returns:
            True if an entry was removed
        """
        return self._entries.pop(normalize_key(key), None) is not None

    def collect_garbage(self, now: float | None = None) -> int:
        """Evict entries with no subscribers that have been inactive for gc_time.

        Returns:
            Number of evicted entries
        """
        now = self._clock() if now is None else now
        expired = [
            key
            for key, entry in self._entries.items()
            if not entry.listeners
            and not entry.is_fetching
            and entry.inactive_since is not None
            and now - entry.inactive_since >= self._gc_time
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Garbage collected %d cache entries", len(expired))
        return len(expired)

    def clear(self) -> list[CacheEntry]:
        """Drop all cached data.

        Entries nobody subscribes to are removed. Subscribed entries are kept
        (with their listeners and fetcher) but reset to idle, starting a new
        epoch, so their subscribers can be refetched.

        Returns:
            The kept, subscribed entries
        """
        kept = [entry for entry in self._entries.values() if entry.listeners]
        self._entries = {entry.key: entry for entry in kept}
        for entry in kept:
            self.reset(entry.key)
        return kept

    def notify(self, entry: CacheEntry) -> None:
        """Send the entry's current state to its subscribers."""
        if not entry.listeners:
            return
        state = entry.snapshot()
        for listener in list(entry.listeners):
            listener(state)

    def now(self) -> float:
        """Read the store's clock."""
        return self._clock()

    @property
    def gc_time(self) -> float:
        """Get the inactivity window before eviction."""
        return self._gc_time
