# This project was developed with assistance from AI tools.
"""Health endpoint and admin catalog seeding."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from db import get_db_service
from fastapi.testclient import TestClient

from ..factories import admin, agent
from .mock_db import make_mock_session

pytestmark = pytest.mark.functional


def _db_service(healthy: bool):
    service = MagicMock()
    service.health_check = AsyncMock(return_value=healthy)
    service.dialect_name = "postgresql"
    return service


@pytest.mark.parametrize("healthy,expected", [(True, "healthy"), (False, "unhealthy")])
def test_health_reports_database(app, healthy, expected):
    app.dependency_overrides[get_db_service] = lambda: _db_service(healthy)

    resp = TestClient(app).get("/health/")

    assert resp.status_code == 200
    items = {item["name"]: item for item in resp.json()}
    assert items["API"]["status"] == "healthy"
    assert items["Database"]["status"] == expected
    assert items["Database"]["message"].startswith("postgresql connection")


def test_root_endpoint(app):
    resp = TestClient(app).get("/")
    assert resp.status_code == 200
    assert "Keystone" in resp.json()["message"]


def test_seed_is_admin_only(make_client):
    client = make_client(agent(), make_mock_session())
    assert client.post("/api/admin/seed").status_code == 403


def test_admin_seeds_catalog(make_client):
    client = make_client(admin(), make_mock_session())
    result = {"status": "seeded", "templates": 22, "catalog_hash": "abc123def456"}
    with patch(
        "src.routes.admin.seed_task_templates", new_callable=AsyncMock, return_value=result,
    ):
        resp = client.post("/api/admin/seed")

    assert resp.status_code == 200
    assert resp.json() == result
