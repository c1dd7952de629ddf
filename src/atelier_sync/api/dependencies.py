"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from functools import partial
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from atelier_sync.config import configure_logging, settings
from atelier_sync.handlers import ConsoleHandler
from atelier_sync.repositories import ApiClient, WorkshopApi
from atelier_sync.services import InvalidationDispatcher, MutationRunner, NotificationCenter, QueryClient

logger = logging.getLogger(__name__)


def get_handler(request: Request) -> ConsoleHandler:
    """Dependency injection for ConsoleHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The ConsoleHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "console_handler", None)
    if handler is None:
        raise RuntimeError("ConsoleHandler not initialized. Check lifespan setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Query client (cache store + fetch executor) - app.state.query_client
    2. Repository (workshop API) - reuses app.state.api_client when a test
       injected one
    3. Mutation runner and notification center
    4. Periodic garbage collection of unsubscribed cache entries
    5. Handler (HTTP endpoints) - app.state.console_handler

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Unmounts open lists, closes the HTTP client and removes all services
        from app.state on shutdown
    """
    configure_logging()

    query_client = QueryClient.create()
    api_client = getattr(app.state, "api_client", None) or ApiClient.create()
    # An expired session invalidates everything the console has cached
    api_client.on_session_expired = partial(query_client.clear, refetch=False)
    gc_task = asyncio.create_task(query_client.collect_garbage_periodically(settings.gc_interval))

    notifications = NotificationCenter()
    runner = MutationRunner(InvalidationDispatcher(query_client), notifications)
    console_handler = ConsoleHandler(query_client, runner, WorkshopApi(api_client), notifications)

    app.state.query_client = query_client
    app.state.api_client = api_client
    app.state.notifications = notifications
    app.state.console_handler = console_handler

    logger.info("Console API started against %s", api_client.base_url)
    logger.info("staleTime=%ss gcTime=%ss retry=%d", settings.stale_time, settings.gc_time, settings.retry)

    yield

    gc_task.cancel()
    with suppress(asyncio.CancelledError):
        await gc_task
    console_handler.close()
    await query_client.settle()
    await api_client.aclose()
    del app.state.console_handler
    del app.state.notifications
    del app.state.api_client
    del app.state.query_client
    logger.info("Console API shut down")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[ConsoleHandler, Depends(get_handler)]
