"""Domain entities for internal representation.

These are dataclasses used by services and repositories. They are NOT used
for API contracts - use DTOs from the dto package for that.

Entities should have:
- No JSON serialization logic
- No Pydantic validation
- No external dependencies
"""

from .cache_entry import CacheEntry, Listener, QueryFetcher, QueryState, QueryStatus
from .cursor_page import CursorList, CursorPage, IdGetter, item_id, merge_items
from .mutation import MutationOutcome, Notification, OutcomeStatus
from .query_key import QueryKey, freeze, make_key, matches, normalize_key

__all__ = [
    "CacheEntry",
    "CursorList",
    "CursorPage",
    "IdGetter",
    "Listener",
    "MutationOutcome",
    "Notification",
    "OutcomeStatus",
    "QueryFetcher",
    "QueryKey",
    "QueryState",
    "QueryStatus",
    "freeze",
    "item_id",
    "make_key",
    "matches",
    "merge_items",
    "normalize_key",
]
