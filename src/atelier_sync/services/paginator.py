"""Generic cursor paginator with debounced search and infinite scroll.

One paginator drives one searchable reference list (workplaces, workers,
weeks, years). All pages of a list live in a single cache entry keyed by
``(resource, *filters, page_size, search)``; the entry's registered fetcher
loads page 1, so invalidating the list's region restarts it from the first
page while keeping the search term.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from enum import StrEnum
from typing import Any

from atelier_sync import query_keys
from atelier_sync.config import settings
from atelier_sync.entities import CursorList, IdGetter, QueryKey, QueryState, item_id
from atelier_sync.protocols import Cancellable, CursorResource, Scheduler

from .query_client import QueryClient, Subscription
from .scheduler import AsyncioScheduler

logger = logging.getLogger(__name__)

PaginatorListener = Callable[["CursorPaginator"], None]


class PaginatorStatus(StrEnum):
    """Paginator state machine: idle -> loading -> ready <-> loading_more, or error."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    LOADING_MORE = "loading_more"
    ERROR = "error"


class CursorPaginator:
    """Cursor list bound to ``(resource, filter key, page size, search)``.

    Example:
        ```python
        paginator = CursorPaginator(client, api.workplaces(), page_size=15)
        paginator.mount()
        await client.settle()
        paginator.items            # first 15 workplaces
        await paginator.on_sentinel_visible()
        paginator.items            # 30 workplaces, no duplicates
        paginator.set_search("atel")  # applied after the debounce window
        ```
    """

    def __init__(
        self,
        client: QueryClient,
        resource: CursorResource,
        *,
        page_size: int | None = None,
        scheduler: Scheduler | None = None,
        debounce: float | None = None,
        id_of: IdGetter = item_id,
        near_bottom_threshold: float = 200.0,
    ) -> None:
        """Initialize the paginator. Nothing is fetched before ``mount()``.

        Args:
            client: Query client holding the list's cache entry
            resource: Where pages come from
            page_size: Items per page (at least 1). If None, uses settings.
            scheduler: Runs the search debounce. Defaults to the asyncio loop.
            debounce: Debounce window in seconds. If None, uses settings.
            id_of: Item id getter used to deduplicate pages
            near_bottom_threshold: Distance in pixels from the end of the
                content at which ``on_scroll`` loads the next page

        Raises:
            ValueError: If page_size is below 1
        """
        self._client = client
        self._resource = resource
        if page_size is None:
            page_size = settings.cursor_page_size
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        self._page_size = page_size
        self._scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._debounce = settings.search_debounce if debounce is None else debounce
        self._id_of = id_of
        self._threshold = near_bottom_threshold

        self._search = ""
        self._pending_search = ""
        self._pending_call: Cancellable | None = None
        self._generation = 0
        self._key: QueryKey | None = None
        self._subscription: Subscription | None = None
        self._loading_cursor: str | None = None
        self._status = PaginatorStatus.IDLE
        self._error: BaseException | None = None
        self._listeners: list[PaginatorListener] = []

    # Lifecycle

    def mount(self, search: str | None = None) -> "CursorPaginator":
        """Subscribe to the list and fetch page 1 unless fresh data is cached."""
        if search is not None:
            self._search = self._pending_search = search
        self._restart(clear=False)
        return self

    def unmount(self) -> None:
        """Stop listening. Cached pages stay until garbage collected."""
        self._cancel_pending_search()
        self._generation += 1
        self._loading_cursor = None
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self._key = None
        self._status = PaginatorStatus.IDLE

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    # Search

    def set_search(self, term: str) -> None:
        """Record a keystroke. The term applies once input pauses for the debounce window."""
        self._pending_search = term
        self._cancel_pending_search()
        self._pending_call = self._scheduler.call_later(self._debounce, self._apply_search)

    async def search_now(self, term: str) -> CursorList | None:
        """Apply ``term`` immediately and wait for page 1.

        Raises:
            RuntimeError: If the paginator is not mounted
        """
        if not self.mounted:
            raise RuntimeError(f"Paginator for {self._resource.name} is not mounted")
        self._pending_search = term
        self._cancel_pending_search()
        self._apply_search()
        return await self._client.fetch_query(self._key)

    async def ensure_loaded(self) -> CursorList | None:
        """Fetch page 1 again if the list lost its data (e.g. after a cache clear).

        Raises:
            RuntimeError: If the paginator is not mounted
        """
        if not self.mounted:
            raise RuntimeError(f"Paginator for {self._resource.name} is not mounted")
        state = self._client.get_query_state(self._key)
        if state is None:
            # Entry was evicted under us
            self._restart(clear=False)
            return None
        if state.has_data or state.is_fetching:
            return self._current()
        return await self._client.fetch_query(self._key)

    def _apply_search(self) -> None:
        self._pending_call = None
        if not self.mounted or self._pending_search == self._search:
            return
        logger.debug("Search for %s changed to %r", self._resource.name, self._pending_search)
        self._search = self._pending_search
        self._restart(clear=True)

    def _cancel_pending_search(self) -> None:
        if self._pending_call is not None:
            self._pending_call.cancel()
            self._pending_call = None

    def _restart(self, clear: bool) -> None:
        self._generation += 1
        self._loading_cursor = None
        self._error = None
        if self._subscription is not None:
            self._subscription.close()

        self._key = query_keys.cursor_list(
            self._resource.name, self._resource.filter_key, self._page_size, self._search
        )
        if clear:
            self._client.reset_query(self._key)
        self._subscription = self._client.subscribe(self._key, self._on_state, self._first_page_fetcher())

        state = self._client.get_query_state(self._key)
        self._status = PaginatorStatus.READY if state is not None and state.has_data else PaginatorStatus.LOADING
        self._emit()

    def _first_page_fetcher(self):
        resource = self._resource
        take = self._page_size
        search = self._search
        id_of = self._id_of

        async def load_first_page() -> CursorList:
            page = await resource.fetch_page(take=take, cursor="", search=search)
            return CursorList.first(page, id_of)

        return load_first_page

    def _on_state(self, state: QueryState) -> None:
        if state.key != self._key:
            return
        if state.is_error and not state.is_fetching:
            self._status = PaginatorStatus.ERROR
            self._error = state.error
        elif state.has_data:
            self._status = PaginatorStatus.LOADING_MORE if self._loading_cursor else PaginatorStatus.READY
            self._error = None
        elif state.is_fetching:
            self._status = PaginatorStatus.LOADING
        self._emit()

    # Paging

    async def fetch_next_page(self) -> bool:
        """Load the page after the last one and merge it by id.

        Does nothing when there is no next page, a page is already loading,
        or page 1 is (re)loading.

        Returns:
            True if a page was appended
        """
        data = self._current()
        state = self._client.get_query_state(self._key) if self._key is not None else None
        if data is None or state is None or not data.has_next_page:
            return False
        if self._loading_cursor is not None or state.is_fetching:
            return False
        if self._status not in (PaginatorStatus.READY, PaginatorStatus.ERROR):
            return False

        key, generation, cursor = self._key, self._generation, data.next_cursor
        self._loading_cursor = cursor
        self._status = PaginatorStatus.LOADING_MORE
        self._error = None
        self._emit()

        self._client.metrics.record_call()
        try:
            page = await self._resource.fetch_page(take=self._page_size, cursor=cursor, search=self._search)
        except Exception as error:
            if generation == self._generation and self._loading_cursor == cursor:
                self._loading_cursor = None
                self._status = PaginatorStatus.ERROR
                self._error = error
                self._emit()
            self._client.metrics.record_error()
            logger.warning("Loading %s after cursor %r failed: %s", self._resource.name, cursor, error)
            return False

        current = self._current()
        if generation != self._generation or key != self._key or self._loading_cursor != cursor:
            # Search changed or unmounted meanwhile
            self._client.metrics.record_drop()
            logger.debug("Dropping %s page for outdated cursor %r", self._resource.name, cursor)
            return False

        self._loading_cursor = None
        latest = self._client.get_query_state(key)
        if current is not data or latest is None or latest.is_fetching:
            # Page 1 was (or is being) refetched after an invalidation
            self._client.metrics.record_drop()
            logger.debug("Dropping %s page for replaced list at cursor %r", self._resource.name, cursor)
            if latest is not None:
                self._on_state(latest)
            return False

        self._client.set_query_data(key, current.append(page))
        return True

    async def on_scroll(self, offset: float, viewport: float, content_height: float) -> bool:
        """Load the next page when the scroll position is near the bottom."""
        if content_height - (offset + viewport) > self._threshold:
            return False
        return await self.fetch_next_page()

    async def on_sentinel_visible(self) -> bool:
        """Load the next page when the end-of-list sentinel becomes visible."""
        return await self.fetch_next_page()

    # State

    def _current(self) -> CursorList | None:
        if self._key is None:
            return None
        return self._client.get_query_data(self._key)

    def snapshot(self) -> CursorList:
        """Current accumulated pages with the load-more flag applied."""
        data = self._current() or CursorList(id_of=self._id_of)
        return replace(data, is_fetching_next_page=self._loading_cursor is not None)

    @property
    def items(self) -> tuple[Any, ...]:
        data = self._current()
        return data.items if data is not None else ()

    @property
    def has_next_page(self) -> bool:
        data = self._current()
        return data is not None and data.has_next_page

    @property
    def is_fetching_next_page(self) -> bool:
        return self._loading_cursor is not None

    @property
    def status(self) -> PaginatorStatus:
        return self._status

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def search(self) -> str:
        """The applied (debounced) search term."""
        return self._search

    @property
    def pending_search(self) -> str:
        """The latest typed search term."""
        return self._pending_search

    @property
    def key(self) -> QueryKey | None:
        return self._key

    @property
    def resource(self) -> CursorResource:
        return self._resource

    @property
    def page_size(self) -> int:
        return self._page_size

    def add_listener(self, listener: PaginatorListener) -> Callable[[], None]:
        """Call ``listener`` with this paginator after every change; returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self)


def use_cursor_list(client: QueryClient, resource: CursorResource, **kwargs: Any) -> CursorPaginator:
    """Create and mount a paginator for ``resource``.

    Keyword arguments are passed to CursorPaginator.
    """
    search = kwargs.pop("search", None)
    return CursorPaginator(client, resource, **kwargs).mount(search)
