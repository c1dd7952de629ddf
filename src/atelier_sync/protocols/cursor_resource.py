"""Cursor resource protocol.

Defines the interface for any large reference list that can be read page by
page with an opaque cursor (workplaces, workers, weeks, years).
"""

from typing import Protocol, runtime_checkable

from atelier_sync.entities import CursorPage, QueryKey


@runtime_checkable
class CursorResource(Protocol):
    """Protocol for cursor-paginated, searchable lists.

    Example:
        ```python
        resource: CursorResource = WorkshopApi(client).workplaces()
        page = await resource.fetch_page(take=15, cursor="", search="")
        page.next_cursor  # "wp-15"
        ```
    """

    @property
    def name(self) -> str:
        """Resource name, used as the first element of its cache keys."""
        ...

    @property
    def filter_key(self) -> QueryKey:
        """Fixed filter params that scope the list (e.g. a workplace id)."""
        ...

    async def fetch_page(self, *, take: int, cursor: str, search: str) -> CursorPage:
        """Fetch one page.

        Args:
            take: Page size
            cursor: Cursor from the previous page, "" for the first page
            search: Search term applied server-side

        Returns:
            The page items and the next cursor

        Raises:
            TransportError: On network or HTTP failure
            ApplicationFailure: When the server answers ``status: "failed"``
        """
        ...
