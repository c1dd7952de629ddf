"""Default selection for single-select pickers.

Kept apart from fetching: the paginator only loads items, this module decides
what is selected.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any

from atelier_sync.entities import IdGetter, item_id

from .paginator import CursorPaginator

logger = logging.getLogger(__name__)


def pick_default(current: Any, items: Sequence[Any], id_of: IdGetter = item_id) -> Any:
    """Return the selection to use given the loaded ``items``.

    An existing selection always wins. Otherwise the first item's id is
    chosen, or None while the list is empty.
    """
    if current is not None:
        return current
    if not items:
        return None
    return id_of(items[0])


class DefaultSelection:
    """Keep a picker's selection, auto-selecting the first item of page 1.

    Example:
        ```python
        workplaces = use_cursor_list(client, api.workplaces())
        selection = DefaultSelection(workplaces)
        await client.settle()
        selection.value  # id of the first workplace
        ```
    """

    def __init__(
        self,
        paginator: CursorPaginator,
        on_change: Callable[[Any], None] | None = None,
        value: Any = None,
        id_of: IdGetter = item_id,
    ) -> None:
        self._paginator = paginator
        self._on_change = on_change
        self._value = value
        self._id_of = id_of
        self._remove_listener = paginator.add_listener(self._on_paginator_change)
        self._on_paginator_change(paginator)

    def _on_paginator_change(self, paginator: CursorPaginator) -> None:
        chosen = pick_default(self._value, paginator.items, self._id_of)
        if chosen != self._value:
            logger.debug("Auto-selected %r from %s", chosen, paginator.resource.name)
            self._set(chosen)

    def select(self, value: Any) -> None:
        """Set the selection explicitly (user choice)."""
        if value != self._value:
            self._set(value)

    def clear(self) -> None:
        """Drop the selection; the next loaded page picks a new default."""
        self._value = None
        self._on_paginator_change(self._paginator)

    def close(self) -> None:
        """Stop following the paginator."""
        self._remove_listener()

    def _set(self, value: Any) -> None:
        self._value = value
        if self._on_change is not None:
            self._on_change(value)

    @property
    def value(self) -> Any:
        return self._value
