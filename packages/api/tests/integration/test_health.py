# This project was developed with assistance from AI tools.
"""Health and seeding against a real database."""

import pytest
from db import Task
from sqlalchemy import func, select

from ..factories import admin, buyer

pytestmark = pytest.mark.integration


async def test_health_reports_database(client_factory):
    client = await client_factory(buyer())

    resp = await client.get("/health/")

    assert resp.status_code == 200
    items = {item["name"]: item for item in resp.json()}
    assert items["Database"]["status"] == "healthy"
    assert items["Database"]["message"] == "sqlite connection established"


async def test_reseeding_does_not_duplicate_the_catalog(client_factory, db_service):
    root = await client_factory(admin())

    first = await root.post("/api/admin/seed")
    second = await root.post("/api/admin/seed")

    assert first.status_code == 200
    assert first.json()["templates"] == 22
    assert first.json()["catalog_hash"] == second.json()["catalog_hash"]
    async with db_service.session() as session:
        count = await session.scalar(select(func.count(Task.id)))
    assert count == 22
