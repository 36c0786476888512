"""Tests for the HTTP API."""
import pytest
from fastapi.testclient import TestClient

from prtracker.api.main import app, get_config
from prtracker.config import Config


@pytest.fixture
def client(tmp_path):
    cfg = Config(SCRIPT_URL="", DATA_DIR=tmp_path, API_KEY=None)
    app.dependency_overrides[get_config] = lambda: cfg
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create(client, pr_number, **fields):
    body = {"prNumber": pr_number, "date": "2026-04-01", "requestedBy": "Zuraidah", **fields}
    return client.post("/records", json=body)


def test_health(client):
    """Test health endpoint reports the backend."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["backend"] == "local"


def test_create_and_list(client):
    """Test that created records come back with camelCase keys."""
    response = _create(client, "ADMIN/2026/001", vendor="Office Depot")
    assert response.status_code == 201
    created = response.json()
    assert created["prNumber"] == "ADMIN/2026/001"
    assert created["id"]
    assert created["timestamp"] > 0

    listed = client.get("/records").json()
    assert [r["prNumber"] for r in listed] == ["ADMIN/2026/001"]


def test_create_duplicate_is_conflict(client):
    """Test that a duplicate PR number maps to 409."""
    assert _create(client, "ADMIN/2026/001").status_code == 201
    response = _create(client, "admin/2026/001")
    assert response.status_code == 409
    assert "already exists" in response.json()["detail"]


def test_update_and_delete(client):
    """Test editing a record and deleting it twice."""
    created = _create(client, "ADMIN/2026/001").json()
    _create(client, "ADMIN/2026/002")

    edited = {**created, "description": "Edited"}
    response = client.put(f"/records/{created['id']}", json=edited)
    assert response.status_code == 200
    assert response.json()["description"] == "Edited"

    clash = {**created, "prNumber": "ADMIN/2026/002"}
    assert client.put(f"/records/{created['id']}", json=clash).status_code == 409

    assert client.delete(f"/records/{created['id']}").status_code == 204
    assert client.delete(f"/records/{created['id']}").status_code == 204
    assert [r["prNumber"] for r in client.get("/records").json()] == ["ADMIN/2026/002"]


def test_availability_and_sequence(client):
    """Test availability lookups and the proposed next number."""
    _create(client, "ADMIN/2026/007")

    taken = client.get("/availability", params={"prNumber": "admin/2026/007"}).json()
    assert taken["available"] is False
    assert taken["record"]["prNumber"] == "ADMIN/2026/007"

    free = client.get("/availability", params={"prNumber": "ADMIN/2026/008"}).json()
    assert free == {"available": True, "record": None}

    sequence = client.get("/sequence/2026").json()
    assert sequence == {"year": "2026", "sequence": "008", "prNumber": "ADMIN/2026/008"}


def test_list_filters(client):
    """Test dashboard filters on the list endpoint."""
    _create(client, "ADMIN/2026/001", requestedBy="Idham", vendor="Depot")
    _create(client, "ADMIN/2026/002", requestedBy="Halim")
    assert len(client.get("/records", params={"user": "Halim"}).json()) == 1
    assert len(client.get("/records", params={"search": "depot"}).json()) == 1


def test_stats_and_export(client):
    """Test the stats figures and the CSV download."""
    _create(client, "ADMIN/2026/001", requestedBy="Halim")
    _create(client, "ADMIN/2026/002", requestedBy="Halim")

    stats = client.get("/stats").json()
    assert stats["totalUsed"] == 2
    assert stats["topUser"] == "Halim"

    response = client.get("/export.csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.splitlines()[0] == "PR Number,Date,Requested By,Vendor,Description"


def test_api_key_required_when_configured(tmp_path):
    """Test that X-API-KEY is checked when API_KEY is set."""
    cfg = Config(SCRIPT_URL="", DATA_DIR=tmp_path, API_KEY="secret")
    app.dependency_overrides[get_config] = lambda: cfg
    try:
        with TestClient(app) as test_client:
            assert test_client.get("/records").status_code == 403
            assert test_client.get("/records", headers={"X-API-KEY": "secret"}).status_code == 200
            assert test_client.get("/health").status_code == 200
    finally:
        app.dependency_overrides.clear()
