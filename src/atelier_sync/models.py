from dataclasses import dataclass


@dataclass
class SyncMetrics:
    """Track counters for fetches, deduplication and invalidation."""

    network_calls: int = 0
    deduplicated_calls: int = 0
    cache_hits: int = 0
    fetch_errors: int = 0
    invalidations: int = 0
    invalidated_entries: int = 0
    refetches: int = 0
    dropped_responses: int = 0

    @property
    def dedup_rate(self) -> float:
        """Share of fetch requests served by an in-flight call."""
        requests = self.network_calls + self.deduplicated_calls
        if requests == 0:
            return 0.0
        return self.deduplicated_calls / requests

    def record_call(self) -> None:
        """Record a network call."""
        self.network_calls += 1

    def record_dedup(self) -> None:
        """Record a request that joined an in-flight call."""
        self.deduplicated_calls += 1

    def record_hit(self) -> None:
        """Record a request served from fresh cached data."""
        self.cache_hits += 1

    def record_error(self) -> None:
        """Record a failed fetch."""
        self.fetch_errors += 1

    def record_invalidation(self, matched: int, refetched: int) -> None:
        """Record one invalidation call."""
        self.invalidations += 1
        self.invalidated_entries += matched
        self.refetches += refetched

    def record_drop(self) -> None:
        """Record a response discarded because its request was outdated."""
        self.dropped_responses += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "network_calls": self.network_calls,
            "deduplicated_calls": self.deduplicated_calls,
            "dedup_rate": self.dedup_rate,
            "cache_hits": self.cache_hits,
            "fetch_errors": self.fetch_errors,
            "invalidations": self.invalidations,
            "invalidated_entries": self.invalidated_entries,
            "refetches": self.refetches,
            "dropped_responses": self.dropped_responses,
        }
