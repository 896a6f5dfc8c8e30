# This project was developed with assistance from AI tools.
"""Integration test fixtures -- real SQLite database, mocked S3 and DocuSign.

Each test gets its own database file with every table created and the task
catalog seeded, so tests never share state. Requests go through the real
app, routers, services and ``get_db``; only authentication is replaced, with
the persona picked per client through a test-only header.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from db import DatabaseService
from fastapi import Request

pytestmark = pytest.mark.integration

PERSONA_HEADER = "X-Test-Persona"


@pytest_asyncio.fixture
async def db_service(tmp_path):
    """Fresh database with the task catalog loaded."""
    from src.services.seed.seeder import seed_task_templates

    service = DatabaseService(f"sqlite+aiosqlite:///{tmp_path / 'closings.db'}")
    await service.create_all()
    async with service.session() as session:
        await seed_task_templates(session)
    yield service
    await service.dispose()


@pytest.fixture(autouse=True)
def storage(monkeypatch):
    """In-memory stand-in for the S3 storage singleton."""
    from src.services import storage as storage_mod

    fake = MagicMock()
    fake.build_object_key = storage_mod.StorageService.build_object_key
    fake.upload_file = AsyncMock(side_effect=lambda data, key, content_type: key)
    fake.download_file = AsyncMock(return_value=b"%PDF-1.7 letter")
    fake.delete_file = AsyncMock(return_value=True)
    monkeypatch.setattr(storage_mod, "_service", fake)
    return fake


@pytest.fixture(autouse=True)
def esign(monkeypatch):
    """DocuSign client that accepts every envelope."""
    from src.services import esign as esign_mod

    fake = MagicMock()
    fake.configured = True
    fake.create_envelope = AsyncMock(return_value="env-123")
    monkeypatch.setattr(esign_mod, "_client", fake)
    return fake


@pytest_asyncio.fixture
async def client_factory(db_service):
    """Factory returning an async httpx client acting as ``user``.

    Clients for different personas can be used side by side: the identity
    travels with each request instead of living in the override.
    """
    from src.main import app
    from src.middleware.auth import get_current_user

    personas = {}
    clients = []

    async def _get_current_user(request: Request):
        return personas[request.headers[PERSONA_HEADER]]

    app.state.db_service = db_service
    app.dependency_overrides[get_current_user] = _get_current_user

    async def _make(user):
        personas[user.user_id] = user
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        client = httpx.AsyncClient(
            transport=transport,
            base_url="http://test",
            headers={PERSONA_HEADER: user.user_id},
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()
    del app.state.db_service

