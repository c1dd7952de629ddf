"""FastAPI application exposing the synchronization core to the console."""

from typing import Any

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from atelier_sync.config import settings
from atelier_sync.dto import (
    CursorListResponse,
    HealthCheckResponse,
    InvalidateRequest,
    InvalidateResponse,
    MutationRequest,
    MutationResponse,
    NotificationResponse,
    QueryStateResponse,
    StatsResponse,
)
from atelier_sync.repositories import ApiClient

from .dependencies import HandlerDep, lifespan


def create_app(api_client: ApiClient | None = None) -> FastAPI:
    """Build the console API.

    Args:
        api_client: Workshop API client to use instead of one built from
            settings (e.g. backed by httpx.MockTransport in tests)

    Returns:
        The FastAPI application
    """
    app = FastAPI(
        title="Atelier Sync API",
        description="Query cache, invalidation and cursor lists for the workshop console",
        version="0.1.0",
        lifespan=lifespan,
    )
    if api_client is not None:
        app.state.api_client = api_client

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Atelier Sync API",
            "version": "0.1.0",
            "description": "Query cache, invalidation and cursor lists for the workshop console",
            "endpoints": {
                "queries": "/queries",
                "lists": "/lists/{resource}",
                "mutations": "/mutations/{kind}",
                "notifications": "/notifications",
                "stats": "/stats",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    @app.get("/queries", response_model=list[QueryStateResponse])
    async def list_queries(handler: HandlerDep, resource: str | None = None) -> list[QueryStateResponse]:
        """List cache entries, optionally only those of one resource."""
        return await handler.list_queries([resource] if resource else None)

    @app.post("/queries/invalidate", response_model=InvalidateResponse)
    async def invalidate(request: InvalidateRequest, handler: HandlerDep) -> InvalidateResponse:
        """Mark a key region stale and refetch what is being watched."""
        return await handler.invalidate(request)

    @app.delete("/queries", response_model=dict[str, str])
    async def clear_queries(handler: HandlerDep) -> dict[str, str]:
        """Drop every cached entry; open lists reload."""
        return await handler.clear_queries()

    @app.get("/lists/{resource}", response_model=CursorListResponse)
    async def open_list(
        resource: str,
        handler: HandlerDep,
        search: str = "",
        workplace_id: str | None = None,
        page_size: int | None = Query(None, ge=1, le=100),
    ) -> CursorListResponse:
        """Open (or re-read) a cursor list with the given search term."""
        return await handler.open_list(resource, search, workplace_id, page_size)

    @app.post("/lists/{resource}/next", response_model=CursorListResponse)
    async def next_page(
        resource: str,
        handler: HandlerDep,
        workplace_id: str | None = None,
        page_size: int | None = Query(None, ge=1, le=100),
    ) -> CursorListResponse:
        """Load the next page of an open cursor list."""
        return await handler.next_page(resource, workplace_id, page_size)

    @app.post("/mutations/{kind}", response_model=MutationResponse)
    async def run_mutation(kind: str, request: MutationRequest, handler: HandlerDep) -> MutationResponse:
        """Run a mutation and invalidate what it touched."""
        return await handler.run_mutation(kind, request)

    @app.get("/notifications", response_model=list[NotificationResponse])
    async def notifications(handler: HandlerDep, limit: int | None = Query(None, ge=1)) -> list[NotificationResponse]:
        """Recent notifications, newest last."""
        return await handler.list_notifications(limit)

    @app.get("/stats", response_model=StatsResponse)
    async def stats(handler: HandlerDep) -> StatsResponse:
        """Cache statistics."""
        return await handler.get_stats()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "atelier_sync.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
