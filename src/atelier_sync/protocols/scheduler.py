"""Scheduler protocol for delayed, cancellable callbacks."""

from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class Cancellable(Protocol):
    """Handle returned by a scheduler."""

    def cancel(self) -> None: ...


@runtime_checkable
class Scheduler(Protocol):
    """Protocol for scheduling a callback after a delay.

    The paginator's search debounce is expressed as a scheduled event that is
    cancelled and re-armed on every keystroke, so a manual scheduler can drive
    it without real timers.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        """Run ``callback`` after ``delay`` seconds unless cancelled."""
        ...
