"""HTTP handlers for the console API.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import dataclasses
import logging
from collections import OrderedDict
from typing import Any

from fastapi import HTTPException, status

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
from atelier_sync.entities import CursorList, QueryState
from atelier_sync.errors import UnknownMutationError, ValidationError
from atelier_sync.repositories import WorkshopApi
from atelier_sync.services import CursorPaginator, MutationRunner, NotificationCenter, QueryClient

logger = logging.getLogger(__name__)

MAX_OPEN_LISTS = 32


def to_jsonable(value: Any) -> Any:
    """Convert cached data (tuples, frozen dataclasses) into JSON-friendly values."""
    if isinstance(value, CursorList):
        return {"items": to_jsonable(value.items), "next_cursor": value.next_cursor, "pages": len(value.pages)}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: to_jsonable(getattr(value, field.name)) for field in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [to_jsonable(item) for item in value]
    return value


def _state_response(state: QueryState) -> QueryStateResponse:
    return QueryStateResponse(
        key=to_jsonable(state.key),
        status=str(state.status),
        data=to_jsonable(state.data),
        error=str(state.error) if state.error is not None else None,
        last_updated_at=state.last_updated_at,
        subscriber_count=state.subscriber_count,
        is_fetching=state.is_fetching,
    )


def _list_response(paginator: CursorPaginator) -> CursorListResponse:
    snapshot = paginator.snapshot()
    return CursorListResponse(
        resource=paginator.resource.name,
        key=to_jsonable(paginator.key) if paginator.key is not None else None,
        status=str(paginator.status),
        search=paginator.search,
        items=to_jsonable(snapshot.items),
        page_count=len(snapshot.pages),
        next_cursor=snapshot.next_cursor,
        has_next_page=snapshot.has_next_page,
        is_fetching_next_page=snapshot.is_fetching_next_page,
        error=str(paginator.error) if paginator.error is not None else None,
    )


class ConsoleHandler:
    """HTTP handlers for the console API.

    This handler delegates to the query client, the mutation runner and
    cursor paginators, and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Setting appropriate status codes
    - Error handling and responses

    Example:
        ```python
        handler = ConsoleHandler(client, runner, WorkshopApi(api), notifications)

        @app.post("/mutations/{kind}", response_model=MutationResponse)
        async def run_mutation(kind: str, request: MutationRequest):
            return await handler.run_mutation(kind, request)
        ```
    """

    def __init__(
        self,
        client: QueryClient,
        runner: MutationRunner,
        api: WorkshopApi,
        notifications: NotificationCenter,
        max_lists: int = MAX_OPEN_LISTS,
    ) -> None:
        """Initialize the console handler.

        Args:
            client: Query client shared by every endpoint
            runner: Mutation runner bound to the same client
            api: Workshop API repository
            notifications: Notification center the runner reports to
            max_lists: Open lists kept mounted; the least recently used one
                is unmounted beyond this
        """
        self._client = client
        self._runner = runner
        self._api = api
        self._notifications = notifications
        self._max_lists = max_lists
        self._paginators: OrderedDict[tuple[str, str | None, int | None], CursorPaginator] = OrderedDict()

    async def list_queries(self, prefix: list[Any] | None = None) -> list[QueryStateResponse]:
        """Handle GET /queries requests."""
        return [_state_response(state) for state in self._client.find_states(prefix or ())]

    async def invalidate(self, request: InvalidateRequest) -> InvalidateResponse:
        """Handle POST /queries/invalidate requests.

        Raises:
            HTTPException: If invalidation fails
        """
        try:
            matched = await self._client.invalidate(request.prefix, exact=request.exact)
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to invalidate: {e}",
            ) from e
        return InvalidateResponse(prefix=request.prefix, exact=request.exact, matched=matched)

    async def open_list(
        self,
        resource: str,
        search: str = "",
        workplace_id: str | None = None,
        page_size: int | None = None,
    ) -> CursorListResponse:
        """Handle GET /lists/{resource} requests.

        Mounts the list on first use, applies ``search`` and waits for page 1.

        Raises:
            HTTPException: 404 for unknown lists, 422 for missing filters
        """
        paginator = self._paginator(resource, workplace_id, page_size)
        try:
            if search != paginator.search:
                await paginator.search_now(search)
            else:
                await paginator.ensure_loaded()
        except Exception as e:
            # Kept on the paginator and rendered inline
            logger.info("Loading %s failed: %s", resource, e)
        await self._client.settle()
        return _list_response(paginator)

    async def next_page(
        self,
        resource: str,
        workplace_id: str | None = None,
        page_size: int | None = None,
    ) -> CursorListResponse:
        """Handle POST /lists/{resource}/next requests."""
        paginator = self._paginator(resource, workplace_id, page_size)
        await self._client.settle()
        await paginator.fetch_next_page()
        return _list_response(paginator)

    async def run_mutation(self, kind: str, request: MutationRequest) -> MutationResponse:
        """Handle POST /mutations/{kind} requests.

        Application and transport failures are regular outcomes (HTTP 200
        with ``status`` failed / error).

        Raises:
            HTTPException: 404 for unknown kinds, 422 for invalid input
        """
        try:
            self._api.endpoint(kind)
            call = self._api.mutation_call(kind, request.context)
            outcome = await self._runner.run(
                kind,
                call,
                request.variables,
                context=request.context,
                label=request.label,
            )
        except (UnknownMutationError, KeyError) as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown mutation kind: {kind}",
            ) from e
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"message": e.message, "fields": e.fields},
            ) from e
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to run mutation: {e}",
            ) from e

        return MutationResponse(
            kind=outcome.kind,
            status=str(outcome.status),
            message=outcome.message,
            payload=to_jsonable(outcome.payload),
        )

    async def clear_queries(self) -> dict[str, str]:
        """Handle DELETE /queries requests.

        Open lists stay mounted and reload from page 1.
        """
        self._client.clear()
        await self._client.settle()
        return {"message": "Query cache cleared"}

    async def list_notifications(self, limit: int | None = None) -> list[NotificationResponse]:
        """Handle GET /notifications requests."""
        return [
            NotificationResponse(title=item.title, message=item.message, variant=item.variant)
            for item in self._notifications.recent(limit)
        ]

    async def get_stats(self) -> StatsResponse:
        """Handle GET /stats requests.

        Raises:
            HTTPException: If an error occurs while fetching stats
        """
        try:
            return StatsResponse(**self._client.get_stats())
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get stats: {e}",
            ) from e

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        return HealthCheckResponse(
            status="healthy",
            api_url=self._api.client.base_url,
            entries=len(self._client.cache),
        )

    def close(self) -> None:
        """Unmount every open list."""
        for paginator in self._paginators.values():
            paginator.unmount()
        self._paginators.clear()

    def _paginator(self, resource: str, workplace_id: str | None, page_size: int | None) -> CursorPaginator:
        key = (resource, workplace_id, page_size)
        paginator = self._paginators.get(key)
        if paginator is not None:
            self._paginators.move_to_end(key)
            return paginator
        try:
            source = self._api.cursor_resource(resource, workplace_id)
        except KeyError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown list: {resource}",
            ) from e
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"message": e.message, "fields": e.fields},
            ) from e
        paginator = CursorPaginator(self._client, source, page_size=page_size).mount()
        self._paginators[key] = paginator
        while len(self._paginators) > self._max_lists:
            _, oldest = self._paginators.popitem(last=False)
            logger.debug("Unmounting least recently used list %s", oldest.resource.name)
            oldest.unmount()
        return paginator
