"""Notifier protocol for transient user-facing messages."""

from typing import Protocol, runtime_checkable

from atelier_sync.entities import Notification


@runtime_checkable
class Notifier(Protocol):
    """Protocol for anything that can surface a notification (toast, log, queue)."""

    def notify(self, notification: Notification) -> None:
        """Surface a notification.

        Args:
            notification: Title, message and variant to show
        """
        ...
