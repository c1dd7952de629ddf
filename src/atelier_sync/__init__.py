"""Atelier Sync - client-side data synchronization for the workshop console.

This package provides a layered architecture for keeping server data cached
and consistent:

Layers:
    - protocols: Interface contracts (CursorResource, Fetcher, Scheduler, Notifier)
    - repositories: HTTP access to the workshop API
    - services: Cache store, fetch executor, invalidation, pagination
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from atelier_sync.services import InvalidationDispatcher, MutationRunner, QueryClient

    # Using class method (recommended, like Path.home())
    client = QueryClient.create()
    client = QueryClient.create(stale_time=30)

    runner = MutationRunner(InvalidationDispatcher(client))
    ```

For HTTP API:
    ```python
    from atelier_sync.api.app import app
    ```
"""

from atelier_sync.config import get_http_client, settings
from atelier_sync.entities import CursorList, CursorPage, MutationOutcome, QueryState, QueryStatus
from atelier_sync.errors import ApplicationFailure, SyncError, TransportError, UnknownMutationError, ValidationError
from atelier_sync.protocols import CursorResource, Fetcher, Notifier, Scheduler
from atelier_sync.repositories import ApiClient, WorkshopApi
from atelier_sync.services import (
    CursorPaginator,
    DefaultSelection,
    InvalidationDispatcher,
    MutationKind,
    MutationRunner,
    NotificationCenter,
    QueryCache,
    QueryClient,
    use_cursor_list,
)

__all__ = [
    # Configuration
    "settings",
    "get_http_client",
    # Protocols (interfaces)
    "CursorResource",
    "Fetcher",
    "Notifier",
    "Scheduler",
    # Services (business logic)
    "QueryCache",
    "QueryClient",
    "InvalidationDispatcher",
    "MutationKind",
    "MutationRunner",
    "NotificationCenter",
    "CursorPaginator",
    "DefaultSelection",
    "use_cursor_list",
    # Repositories (data access)
    "ApiClient",
    "WorkshopApi",
    # Entities (domain models)
    "CursorList",
    "CursorPage",
    "MutationOutcome",
    "QueryState",
    "QueryStatus",
    # Errors
    "SyncError",
    "TransportError",
    "ApplicationFailure",
    "ValidationError",
    "UnknownMutationError",
]
