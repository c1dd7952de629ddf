"""
In-memory stand-ins for the workshop API used across the test suite.
"""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx

from atelier_sync.entities import CursorPage


async def spin(times: int = 10) -> None:
    """Let pending tasks run a few loop iterations."""
    for _ in range(times):
        await asyncio.sleep(0)


def make_workplaces(count: int) -> list[dict[str, Any]]:
    """Workplaces wp-1 .. wp-<count>."""
    return [{"id": f"wp-{n}", "name": f"Atelier {n}"} for n in range(1, count + 1)]


def paginate(
    items: list[dict[str, Any]],
    take: int,
    cursor: str,
    search: str,
    overlap: int = 0,
) -> tuple[list[dict[str, Any]], str | None]:
    """Cursor pagination over ``items``: the cursor is the id of the last item seen.

    ``overlap`` repeats that many items of the previous page, like a server
    whose list shifted between requests.
    """
    matching = [item for item in items if search.lower() in (item["id"] + " " + item["name"]).lower()]
    start = 0
    if cursor:
        ids = [item["id"] for item in matching]
        start = max(ids.index(cursor) + 1 - overlap, 0)
    page = matching[start : start + take]
    has_more = start + take < len(matching)
    return page, (page[-1]["id"] if has_more and page else None)


class FakeCursorResource:
    """CursorResource backed by a list, recording every page request."""

    def __init__(
        self,
        items: list[dict[str, Any]],
        name: str = "workplaces-cursor",
        filter_key: tuple = (),
        overlap: int = 0,
    ) -> None:
        self.items = items
        self._name = name
        self._filter_key = filter_key
        self.overlap = overlap
        self.calls: list[tuple[str, str, int]] = []
        self.gate: asyncio.Event | None = None
        self.fail_next: Exception | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def filter_key(self) -> tuple:
        return self._filter_key

    async def fetch_page(self, *, take: int, cursor: str, search: str) -> CursorPage:
        self.calls.append((cursor, search, take))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        page, next_cursor = paginate(self.items, take, cursor, search, self.overlap)
        return CursorPage(items=tuple(page), next_cursor=next_cursor)


class CountingFetcher:
    """Query fetcher that counts calls and returns ``result`` (or raises ``error``)."""

    def __init__(self, result: Any = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def __call__(self) -> Any:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if callable(self.result):
            return self.result(self.calls)
        return self.result


class ControlledFetcher:
    """Query fetcher whose calls stay pending until the test resolves them."""

    def __init__(self) -> None:
        self.pending: list[asyncio.Future] = []

    async def __call__(self) -> Any:
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


class FakeMutation:
    """Mutation call returning a fixed payload (or raising)."""

    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = {"status": "success", "message": "Done"} if payload is None else payload
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, variables: Any) -> Any:
        self.calls.append(dict(variables))
        if self.error is not None:
            raise self.error
        return self.payload


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWorkshopServer:
    """httpx.MockTransport handler imitating the workshop API routes the tests use."""

    def __init__(self, workplaces: list[dict[str, Any]] | None = None) -> None:
        self.workplaces = workplaces if workplaces is not None else make_workplaces(40)
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def route(self, method: str, path: str, status_code: int = 200, payload: Any = None) -> None:
        """Answer ``method path`` with a fixed response."""
        self.routes[(method, path)] = lambda request: httpx.Response(status_code, json=payload)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self.routes:
            return self.routes[key](request)

        if key == ("GET", "/api/v1/worker/workplace/cursor"):
            params = request.url.params
            page, next_cursor = paginate(
                self.workplaces,
                int(params.get("take", "20")),
                params.get("cursor", ""),
                params.get("search", ""),
            )
            return httpx.Response(
                200, json={"status": "success", "workplaces": page, "nextCursor": next_cursor}
            )

        if key == ("POST", "/api/v1/worker/workplace/create"):
            body = json.loads(request.content or b"{}")
            created = {"id": f"wp-{len(self.workplaces) + 1}", "name": body.get("name", "")}
            self.workplaces.insert(0, created)
            return httpx.Response(201, json={"status": "success", "message": "Workplace created", "data": created})

        return httpx.Response(404, json={"status": "failed", "message": f"No route {request.url.path}"})

    def count(self, method: str, path: str) -> int:
        return sum(1 for request in self.requests if request.method == method and request.url.path == path)
