"""
Pytest configuration and common fixtures for atelier-sync tests.
"""

import httpx
import pytest

from atelier_sync.repositories import ApiClient
from atelier_sync.services import ManualScheduler, NotificationCenter, QueryClient
from tests.fakes import FakeClock, FakeCursorResource, FakeWorkshopServer, make_workplaces


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def query_client(clock: FakeClock) -> QueryClient:
    """Query client with staleTime 0, gcTime 300s and a manual clock."""
    return QueryClient.create(stale_time=0, gc_time=300, retry=0, clock=clock)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def notifications() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture
def workplaces_resource() -> FakeCursorResource:
    """40 workplaces wp-1 .. wp-40."""
    return FakeCursorResource(make_workplaces(40))


@pytest.fixture
def workshop_server() -> FakeWorkshopServer:
    return FakeWorkshopServer()


@pytest.fixture
def api_client(workshop_server: FakeWorkshopServer) -> ApiClient:
    """ApiClient talking to the in-memory workshop server."""
    http = httpx.AsyncClient(
        base_url="http://workshop.test",
        headers={"Content-Type": "application/json", "Authorization": "Bearer test-token"},
        transport=httpx.MockTransport(workshop_server),
    )
    return ApiClient(base_url="http://workshop.test", token="test-token", client=http)
