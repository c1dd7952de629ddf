"""Service layer for the synchronization core.

This layer contains the cache store, the fetch executor, invalidation and
pagination. Services depend on protocols (interfaces), not concrete
implementations, so fakes can stand in for the HTTP API in tests.

Architecture:
    Handler -> MutationRunner / CursorPaginator -> QueryClient -> QueryCache
    (HTTP)  -> (Orchestration)                  -> (Facade)    -> (Store)

Usage:
    ```python
    from atelier_sync.services import InvalidationDispatcher, QueryClient

    # Using factory method (recommended)
    client = QueryClient.create()
    client = QueryClient.create(stale_time=30)

    # Or manual creation
    client = QueryClient(cache=QueryCache(gc_time=60))
    dispatcher = InvalidationDispatcher(client)
    ```
"""

from .fetch_executor import FetchExecutor
from .invalidation import (
    INVALIDATION_RULES,
    InvalidationDispatcher,
    MutationKind,
    PrefixTemplate,
    Ref,
    exact,
    prefix,
    ref,
)
from .mutations import MutationRunner, normalize_payload
from .notifications import NotificationCenter
from .paginator import CursorPaginator, PaginatorStatus, use_cursor_list
from .query_cache import QueryCache
from .query_client import QueryClient, Subscription
from .scheduler import AsyncioScheduler, ManualScheduler
from .selection import DefaultSelection, pick_default

__all__ = [
    "INVALIDATION_RULES",
    "AsyncioScheduler",
    "CursorPaginator",
    "DefaultSelection",
    "FetchExecutor",
    "InvalidationDispatcher",
    "ManualScheduler",
    "MutationKind",
    "MutationRunner",
    "NotificationCenter",
    "PaginatorStatus",
    "PrefixTemplate",
    "QueryCache",
    "QueryClient",
    "Ref",
    "Subscription",
    "exact",
    "normalize_payload",
    "pick_default",
    "prefix",
    "ref",
    "use_cursor_list",
]
