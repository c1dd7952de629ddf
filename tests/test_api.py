"""
Tests for the console API.
"""

import pytest
from fastapi.testclient import TestClient

from atelier_sync.api.app import create_app

CURSOR_PATH = "/api/v1/worker/workplace/cursor"


@pytest.fixture
def client(api_client):
    """Create a test client backed by the in-memory workshop server."""
    with TestClient(create_app(api_client=api_client)) as test_client:
        yield test_client


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Atelier Sync API"
    assert "mutations" in data["endpoints"]


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["api_url"] == "http://workshop.test"


def test_list_and_next_page(client):
    """Page 1 then the sentinel page, merged without duplicates."""
    response = client.get("/lists/workplaces-cursor", params={"page_size": 15})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert len(data["items"]) == 15
    assert data["next_cursor"] == "wp-15"
    assert data["has_next_page"] is True

    response = client.post("/lists/workplaces-cursor/next", params={"page_size": 15})
    assert response.status_code == 200
    data = response.json()
    assert len(data["items"]) == 30
    assert data["page_count"] == 2
    assert data["next_cursor"] == "wp-30"


def test_list_search(client, workshop_server):
    response = client.get("/lists/workplaces-cursor", params={"page_size": 15, "search": "Atelier 3"})
    assert response.status_code == 200
    data = response.json()
    assert data["search"] == "Atelier 3"
    assert len(data["items"]) == 11
    assert data["has_next_page"] is False


def test_unknown_list(client):
    response = client.get("/lists/planets-cursor")
    assert response.status_code == 404


def test_list_requires_workplace(client):
    response = client.get("/lists/weeks-cursor")
    assert response.status_code == 422
    assert response.json()["detail"]["fields"] == {"workplaceId": "required"}


def test_mutation_refetches_watched_list(client, workshop_server):
    """Creating a workplace refetches the open workplace list from page 1."""
    client.get("/lists/workplaces-cursor", params={"page_size": 15})
    assert workshop_server.count("GET", CURSOR_PATH) == 1

    response = client.post("/mutations/createWorkplace", json={"variables": {"name": "Atelier Neuf"}})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["message"] == "Workplace created"
    assert workshop_server.count("GET", CURSOR_PATH) == 2

    items = client.get("/lists/workplaces-cursor", params={"page_size": 15}).json()["items"]
    assert items[0]["name"] == "Atelier Neuf"

    notifications = client.get("/notifications").json()
    assert notifications[-1]["message"] == "Workplace created"
    assert notifications[-1]["variant"] == "default"


def test_failed_mutation_is_an_outcome(client, workshop_server):
    workshop_server.route("POST", "/api/v1/season/create", status_code=500, payload={"message": "Erreur serveur"})

    response = client.post("/mutations/createSeason", json={"variables": {"name": "Été"}})

    assert response.status_code == 200
    assert response.json()["status"] == "error"
    assert response.json()["message"] == "Erreur serveur"
    assert client.get("/notifications").json()[-1]["variant"] == "destructive"


def test_unknown_mutation(client):
    response = client.post("/mutations/launchRocket", json={"variables": {}})
    assert response.status_code == 404


def test_mutation_missing_path_field(client, workshop_server):
    response = client.post("/mutations/deleteSeason", json={"variables": {}})
    assert response.status_code == 422
    assert response.json()["detail"]["fields"] == {"seasonId": "required"}
    assert workshop_server.requests == []


def test_invalidate_and_queries(client, workshop_server):
    client.get("/lists/workplaces-cursor", params={"page_size": 15})

    queries = client.get("/queries", params={"resource": "workplaces-cursor"}).json()
    assert len(queries) == 1
    assert queries[0]["subscriber_count"] == 1

    response = client.post("/queries/invalidate", json={"prefix": ["workplaces-cursor"]})
    assert response.status_code == 200
    assert response.json()["matched"] == 1
    assert workshop_server.count("GET", CURSOR_PATH) == 2

    response = client.post("/queries/invalidate", json={"prefix": []})
    assert response.status_code == 422


def test_stats(client):
    client.get("/lists/workplaces-cursor", params={"page_size": 15})

    response = client.get("/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["entries"] == 1
    assert data["network_calls"] == 1


def test_clear_queries_reloads_open_lists(client, workshop_server):
    client.get("/lists/workplaces-cursor", params={"page_size": 15})
    client.get("/lists/workplaces-cursor", params={"page_size": 15, "search": "Atelier 3"})

    response = client.delete("/queries")
    assert response.status_code == 200
    assert client.get("/stats").json()["entries"] == 1
    assert workshop_server.count("GET", CURSOR_PATH) == 3

    data = client.get("/lists/workplaces-cursor", params={"page_size": 15, "search": "Atelier 3"}).json()
    assert len(data["items"]) == 11


def test_expired_session_keeps_open_lists_usable(client, workshop_server):
    client.get("/lists/workplaces-cursor", params={"page_size": 15})
    workshop_server.route(
        "POST", "/api/v1/season/create", status_code=401, payload={"errorCode": 700, "message": "Session expirée"}
    )

    response = client.post("/mutations/createSeason", json={"variables": {"name": "Été"}})
    assert response.json()["status"] == "error"
    assert workshop_server.count("GET", CURSOR_PATH) == 1

    data = client.get("/lists/workplaces-cursor", params={"page_size": 15}).json()
    assert len(data["items"]) == 15
    assert workshop_server.count("GET", CURSOR_PATH) == 2
