"""Cursor pagination domain entities."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

IdGetter = Callable[[Any], Any]


def item_id(item: Any) -> Any:
    """Default id getter: ``item["id"]`` for mappings, ``item.id`` otherwise."""
    if isinstance(item, dict):
        return item["id"]
    return item.id


def merge_items(existing: Iterable[Any], incoming: Iterable[Any], id_of: IdGetter = item_id) -> tuple[Any, ...]:
    """Merge two item sequences, deduplicated by id.

    Existing ids keep their position (first-seen order wins); unseen ids from
    ``incoming`` are appended in the order they arrive.
    """
    seen: set[Any] = set()
    merged: list[Any] = []
    for item in (*existing, *incoming):
        key = id_of(item)
        if key in seen:
            continue
        seen.add(key)
        merged.append(item)
    return tuple(merged)


@dataclass(frozen=True)
class CursorPage:
    """One page returned by a cursor resource.

    Attributes:
        items: Items on this page
        next_cursor: Opaque token for the following page, None on the last page
    """

    items: tuple[Any, ...]
    next_cursor: str | None = None


@dataclass(frozen=True)
class CursorList:
    """Accumulated pages of a cursor list.

    Attributes:
        pages: Pages in fetch order
        items: Items across all pages, deduplicated by id, first-seen order
        is_fetching_next_page: True while a follow-up page is loading
    """

    pages: tuple[CursorPage, ...] = ()
    items: tuple[Any, ...] = ()
    is_fetching_next_page: bool = False
    id_of: IdGetter = field(default=item_id, repr=False, compare=False)

    @classmethod
    def first(cls, page: CursorPage, id_of: IdGetter = item_id) -> "CursorList":
        """Start a list from its first page."""
        return cls(pages=(page,), items=merge_items((), page.items, id_of), id_of=id_of)

    def append(self, page: CursorPage) -> "CursorList":
        """Return a new list with ``page`` merged at the end."""
        return CursorList(
            pages=(*self.pages, page),
            items=merge_items(self.items, page.items, self.id_of),
            id_of=self.id_of,
        )

    @property
    def next_cursor(self) -> str | None:
        return self.pages[-1].next_cursor if self.pages else None

    @property
    def has_next_page(self) -> bool:
        return self.next_cursor is not None
