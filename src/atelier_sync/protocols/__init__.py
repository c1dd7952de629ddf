"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Swapping the HTTP API for in-memory fakes
- Driving debounce timers manually in tests
- Clear separation of concerns

Usage:
    ```python
    from atelier_sync.protocols import CursorResource

    resource: CursorResource = WorkshopApi(client).workplaces()  # works
    resource: CursorResource = InMemoryResource(...)             # also works
    ```
"""

from .cursor_resource import CursorResource
from .fetcher import Fetcher
from .notifier import Notifier
from .scheduler import Cancellable, Scheduler

__all__ = [
    "Cancellable",
    "CursorResource",
    "Fetcher",
    "Notifier",
    "Scheduler",
]
