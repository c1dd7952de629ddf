"""Workshop API repository.

Cursor resources for the large reference lists, a mutation endpoint table
keyed by mutation kind, and a generic query fetcher.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from string import Formatter
from typing import Any

from atelier_sync import query_keys as qk
from atelier_sync.entities import CursorPage, QueryKey
from atelier_sync.errors import ApplicationFailure, ValidationError

from .api_client import ApiClient, error_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MutationEndpoint:
    """HTTP route of one mutation.

    Attributes:
        method: HTTP method
        path: Path template; ``{name}`` fields come from the context or input
        query: Input fields sent in the query string instead of the body
        defaults: Values for path fields missing from the input
    """

    method: str
    path: str
    query: tuple[str, ...] = ()
    defaults: tuple[tuple[str, str], ...] = ()

    @property
    def path_fields(self) -> list[str]:
        return [name for _, name, _, _ in Formatter().parse(self.path) if name]


def _counterparty_endpoints(party: str) -> dict[str, MutationEndpoint]:
    title = party.capitalize()
    base = f"/api/v1/{party}"
    return {
        f"create{title}": MutationEndpoint("POST", f"{base}/create"),
        f"update{title}": MutationEndpoint("PUT", f"{base}/update/{{id}}"),
        f"delete{title}": MutationEndpoint("DELETE", f"{base}/delete/{{{party}Id}}"),
        f"update{title}Status": MutationEndpoint("PATCH", f"{base}/status/{{{party}Id}}"),
        f"createBon{title}": MutationEndpoint("POST", f"{base}/bon/create/{{seasonId}}/{{{party}Id}}"),
        f"toggleBon{title}": MutationEndpoint(
            "PATCH", f"{base}/bon/{{seasonId}}/{{bonId}}", query=("openBon", "closeBon")
        ),
        f"deleteBon{title}": MutationEndpoint("DELETE", f"{base}/bon/delete/{{seasonId}}/{{bonId}}"),
        f"createOrder{title}": MutationEndpoint("POST", f"{base}/order/create/{{seasonId}}/{{{party}Id}}"),
        f"updateOrder{title}": MutationEndpoint("PATCH", f"{base}/orders/update/{{seasonId}}/{{orderId}}"),
        f"deleteOrder{title}": MutationEndpoint("DELETE", f"{base}/orders/delete/{{seasonId}}/{{orderId}}"),
        f"createAvance{title}": MutationEndpoint(
            "POST", f"{base}/avance/create/{{seasonId}}/{{{party}Id}}/{{bonId}}"
        ),
        f"deleteAvance{title}": MutationEndpoint("DELETE", f"{base}/avances/delete/{{seasonId}}/{{avanceId}}"),
    }


def _build_endpoints() -> dict[str, MutationEndpoint]:
    endpoints: dict[str, MutationEndpoint] = {}
    for party in qk.COUNTERPARTY_KEYS:
        endpoints.update(_counterparty_endpoints(party))

    # Walk-in orders have no client record
    endpoints["createOrderClient"] = MutationEndpoint(
        "POST", "/api/v1/client/order/create/{seasonId}/{clientId}", defaults=(("clientId", "passager"),)
    )
    endpoints["createMultipleOrdersClient"] = MutationEndpoint(
        "POST", "/api/v1/client/orders/create/{seasonId}/{clientId}"
    )

    endpoints.update(
        {
            "createProduct": MutationEndpoint("POST", "/api/v1/product/create/{seasonId}"),
            "updateProduct": MutationEndpoint("PUT", "/api/v1/product/update/{seasonId}/{id}"),
            "deleteProduct": MutationEndpoint("DELETE", "/api/v1/product/delete/{seasonId}/{productId}"),
            "updateClientReturnStock": MutationEndpoint(
                "PUT", "/api/v1/stock-return/update/{seasonId}/{clientReturnId}"
            ),
            "deleteClientReturnStock": MutationEndpoint(
                "DELETE", "/api/v1/stock-return/delete/{seasonId}/{clientReturnId}"
            ),
            "createOrderClientFromReturnStock": MutationEndpoint(
                "POST", "/api/v1/stock-return/order/create/{seasonId}/{clientId}"
            ),
            "createSeason": MutationEndpoint("POST", "/api/v1/season/create"),
            "updateSeason": MutationEndpoint("PUT", "/api/v1/season/update/{seasonId}"),
            "deleteSeason": MutationEndpoint("DELETE", "/api/v1/season/delete/{seasonId}"),
            "toggleSeason": MutationEndpoint("PUT", "/api/v1/season/toggle/{seasonId}"),
            "createUser": MutationEndpoint("POST", "/api/v1/user/create"),
            "updateUser": MutationEndpoint("PUT", "/api/v1/user/update/{id}"),
            "deleteUser": MutationEndpoint("DELETE", "/api/v1/user/delete/{userId}"),
            "createWorkplace": MutationEndpoint("POST", "/api/v1/worker/workplace/create"),
            "updateWorkplace": MutationEndpoint("PATCH", "/api/v1/worker/workplace/{id}"),
            "deleteWorkplace": MutationEndpoint("DELETE", "/api/v1/worker/workplace/{id}"),
            "createWorker": MutationEndpoint("POST", "/api/v1/worker/create"),
            "updateWorker": MutationEndpoint("PATCH", "/api/v1/worker/{id}"),
            "deleteWorker": MutationEndpoint("DELETE", "/api/v1/worker/{id}"),
            "updateWorkerStatus": MutationEndpoint("PATCH", "/api/v1/worker/{workerId}/status"),
            "createWeek": MutationEndpoint("POST", "/api/v1/worker/week/create"),
            "updateWeek": MutationEndpoint("PUT", "/api/v1/worker/week/{weekId}"),
            "deleteWeek": MutationEndpoint("DELETE", "/api/v1/worker/week/{weekId}/{workplaceId}"),
            "createWeekRecord": MutationEndpoint("POST", "/api/v1/worker/week-record/create"),
            "updateWeekRecord": MutationEndpoint("PATCH", "/api/v1/worker/week-record/update/{id}"),
            "updateWeekRecordPayment": MutationEndpoint(
                "PATCH", "/api/v1/worker/week-record/payment/{type}/{recordId}"
            ),
            "deleteWeekRecord": MutationEndpoint("DELETE", "/api/v1/worker/week-record/delete/{recordId}"),
        }
    )
    return endpoints


MUTATION_ENDPOINTS: Mapping[str, MutationEndpoint] = _build_endpoints()


class HttpCursorResource:
    """Cursor-paginated list served by ``GET <path>?take&cursor&search``.

    This class satisfies the CursorResource protocol through structural typing.
    """

    def __init__(
        self,
        api: ApiClient,
        name: str,
        path: str,
        items_field: str,
        filter_key: QueryKey = (),
    ) -> None:
        """Initialize the resource.

        Args:
            api: HTTP client
            name: Resource name (first element of the list's cache keys)
            path: Endpoint path
            items_field: Payload field holding the page items
            filter_key: Fixed filters scoping the list
        """
        self._api = api
        self._name = name
        self._path = path
        self._items_field = items_field
        self._filter_key = tuple(filter_key)

    @property
    def name(self) -> str:
        return self._name

    @property
    def filter_key(self) -> QueryKey:
        return self._filter_key

    async def fetch_page(self, *, take: int, cursor: str, search: str) -> CursorPage:
        """Fetch one page.

        Raises:
            TransportError: On network or HTTP failure
            ApplicationFailure: When the server answers ``status: "failed"`` or
                a body that is not a JSON object
        """
        payload = await self._api.get(self._path, params={"take": take, "cursor": cursor or "", "search": search})
        if not isinstance(payload, Mapping):
            raise ApplicationFailure(f"Unexpected {self._name} page: {type(payload).__name__}")
        if payload.get("status") == "failed":
            raise ApplicationFailure(error_message(payload), payload)
        items = payload.get(self._items_field) or []
        return CursorPage(items=tuple(items), next_cursor=payload.get("nextCursor") or None)


class WorkshopApi:
    """Typed entry points into the workshop API.

    Example:
        ```python
        api = WorkshopApi(ApiClient.create())
        weeks = use_cursor_list(client, api.weeks("wp-1"))
        call = api.mutation_call(MutationKind.CREATE_WEEK)
        await runner.run(MutationKind.CREATE_WEEK, call, {"workplaceId": "wp-1", "name": "S12"})
        ```
    """

    def __init__(self, api: ApiClient, endpoints: Mapping[str, MutationEndpoint] | None = None) -> None:
        self._api = api
        self._endpoints = MUTATION_ENDPOINTS if endpoints is None else endpoints

    # Cursor lists

    def workplaces(self) -> HttpCursorResource:
        return HttpCursorResource(self._api, qk.WORKPLACES_CURSOR, "/api/v1/worker/workplace/cursor", "workplaces")

    def workers(self) -> HttpCursorResource:
        return HttpCursorResource(self._api, qk.WORKERS_CURSOR, "/api/v1/worker/cursor", "workers")

    def weeks(self, workplace_id: str) -> HttpCursorResource:
        return HttpCursorResource(
            self._api, qk.WEEKS_CURSOR, f"/api/v1/worker/week/cursor/{workplace_id}", "weeks", (workplace_id,)
        )

    def years(self, workplace_id: str) -> HttpCursorResource:
        return HttpCursorResource(
            self._api, qk.YEARS_CURSOR, f"/api/v1/worker/year/cursor/{workplace_id}", "years", (workplace_id,)
        )

    def cursor_resource(self, name: str, workplace_id: str | None = None) -> HttpCursorResource:
        """Look up a cursor resource by its name.

        Raises:
            KeyError: If ``name`` is not a cursor list
            ValidationError: If the list needs a workplace id and none was given
        """
        if name == qk.WORKPLACES_CURSOR:
            return self.workplaces()
        if name == qk.WORKERS_CURSOR:
            return self.workers()
        if name in (qk.WEEKS_CURSOR, qk.YEARS_CURSOR):
            if not workplace_id:
                raise ValidationError(f"{name} needs a workplace id", {"workplaceId": "required"})
            return self.weeks(workplace_id) if name == qk.WEEKS_CURSOR else self.years(workplace_id)
        raise KeyError(name)

    # Queries

    def fetcher(self, path: str, params: Mapping[str, Any] | None = None) -> Callable[[], Awaitable[Any]]:
        """Build a query fetcher for ``GET path``.

        The fetcher raises ApplicationFailure when the payload reports
        ``status: "failed"``, so the failure lands on the cache entry.
        """
        api = self._api
        query = dict(params or {})

        async def fetch() -> Any:
            payload = await api.get(path, params=query or None)
            if isinstance(payload, Mapping) and payload.get("status") == "failed":
                raise ApplicationFailure(error_message(payload), dict(payload))
            return payload

        return fetch

    # Mutations

    def endpoint(self, kind: str) -> MutationEndpoint:
        """Get the route of a mutation kind.

        Raises:
            KeyError: If ``kind`` has no route
        """
        return self._endpoints[kind]

    async def send_mutation(
        self,
        kind: str,
        variables: Mapping[str, Any],
        context: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send one mutation and return the raw payload.

        Path fields are read from ``variables`` first, then ``context``.

        Raises:
            ValidationError: If a path field has no value
            TransportError: On network or HTTP failure
        """
        endpoint = self.endpoint(kind)
        values = {**dict(endpoint.defaults), **(context or {}), **variables}
        fields = endpoint.path_fields

        missing = [name for name in fields if values.get(name) in (None, "")]
        if missing:
            raise ValidationError(
                f"Missing {', '.join(missing)} for {kind}", {name: "required" for name in missing}
            )

        path = endpoint.path.format(**{name: values[name] for name in fields})
        consumed = {*fields, *endpoint.query, *(context or {})}
        params = {name: variables[name] for name in endpoint.query if name in variables} or None
        body = {name: value for name, value in variables.items() if name not in consumed}

        logger.debug("%s %s (%s)", endpoint.method, path, kind)
        if endpoint.method == "DELETE":
            return await self._api.request("DELETE", path, params=params)
        return await self._api.request(endpoint.method, path, params=params, json=body)

    def mutation_call(self, kind: str, context: Mapping[str, Any] | None = None):
        """Bind ``kind`` and ``context`` into a Fetcher for MutationRunner.run."""

        async def call(variables: Mapping[str, Any]) -> Any:
            return await self.send_mutation(kind, variables, context)

        return call

    @property
    def client(self) -> ApiClient:
        return self._api
