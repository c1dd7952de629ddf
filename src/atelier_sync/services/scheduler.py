"""Scheduler implementations for debounced events."""

import asyncio
import heapq
import itertools
from collections.abc import Callable


class AsyncioScheduler:
    """Schedule callbacks on the running asyncio event loop.

    This class satisfies the Scheduler protocol through structural typing.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        """Run ``callback`` after ``delay`` seconds on the running loop."""
        return asyncio.get_running_loop().call_later(delay, callback)


class ScheduledCall:
    """Pending callback of a ManualScheduler."""

    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by explicit ``advance()`` calls instead of real time.

    Example:
        ```python
        scheduler = ManualScheduler()
        paginator.set_search("atel")
        scheduler.advance(0.5)  # debounce window elapses, search applies
        ```
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        """Queue ``callback`` to fire once the clock passes now + delay."""
        call = ScheduledCall(self._now + delay, callback)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire every due, uncancelled callback.

        Returns:
            Number of callbacks fired
        """
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            self._now = due
            if call.cancelled:
                continue
            call.callback()
            fired += 1
        self._now = target
        return fired

    @property
    def now(self) -> float:
        """Get the current manual clock value."""
        return self._now

    @property
    def pending(self) -> int:
        """Get the number of queued, uncancelled callbacks."""
        return sum(1 for _, _, call in self._queue if not call.cancelled)
