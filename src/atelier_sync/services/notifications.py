"""In-process notification center."""

import logging
from collections import deque
from collections.abc import Callable

from atelier_sync.entities import Notification

logger = logging.getLogger(__name__)

NotificationListener = Callable[[Notification], None]


class NotificationCenter:
    """Keep recent notifications and fan them out to listeners.

    This class satisfies the Notifier protocol through structural typing.
    """

    def __init__(self, max_items: int = 50) -> None:
        self._items: deque[Notification] = deque(maxlen=max_items)
        self._listeners: list[NotificationListener] = []

    def notify(self, notification: Notification) -> None:
        """Record ``notification`` and pass it to every listener."""
        if notification.is_error:
            logger.warning("%s: %s", notification.title, notification.message)
        else:
            logger.info("%s: %s", notification.title, notification.message)
        self._items.append(notification)
        for listener in list(self._listeners):
            listener(notification)

    def add_listener(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def recent(self, limit: int | None = None) -> list[Notification]:
        """Return the most recent notifications, newest last."""
        items = list(self._items)
        return items if limit is None else items[-limit:]

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
