# This project was developed with assistance from AI tools.
"""Letter-of-intent and e-sign webhook routes."""

import base64
import hashlib
import hmac
import json
from unittest.mock import AsyncMock, patch

import pytest
from db.enums import LetterStatus

from src.core.config import settings
from src.core.errors import DependencyError

from ..factories import buyer, lender, make_mock_letter
from .mock_db import make_mock_session

pytestmark = pytest.mark.functional


# ---------------------------------------------------------------------------
# /api/documents
# ---------------------------------------------------------------------------


def test_generate_letter_returns_201(make_client):
    client = make_client(buyer(), make_mock_session())
    with patch(
        "src.services.loi.generate_from_offer",
        new_callable=AsyncMock,
        return_value=make_mock_letter(),
    ) as mock_generate:
        resp = client.post("/api/documents/loi", json={"offerId": 20})

    assert resp.status_code == 201
    body = resp.json()
    assert body["document_id"] == "LOI-0A1B2C3D4E5F"
    assert body["status"] == "draft"
    assert mock_generate.await_args.args[2].offer_id == 20


def test_lender_cannot_generate_letters(make_client):
    client = make_client(lender(), make_mock_session())
    resp = client.post("/api/documents/loi", json={"offerId": 20})
    assert resp.status_code == 403


def test_list_letters_paginates(make_client):
    letters = [make_mock_letter(id=1), make_mock_letter(id=2, document_id="LOI-2")]
    client = make_client(buyer(), make_mock_session())
    with patch(
        "src.services.loi.list_documents",
        new_callable=AsyncMock,
        return_value=(letters, 3),
    ):
        resp = client.get("/api/documents?limit=2")

    assert resp.status_code == 200
    body = resp.json()
    assert [d["id"] for d in body["data"]] == [1, 2]
    assert body["pagination"]["has_more"] is True


def test_send_failure_surfaces_as_502(make_client):
    client = make_client(buyer(), make_mock_session())
    with patch(
        "src.services.loi.send_for_signature",
        new_callable=AsyncMock,
        side_effect=DependencyError("E-signature provider error: timeout"),
    ):
        resp = client.post("/api/documents/LOI-0A1B2C3D4E5F/send")

    assert resp.status_code == 502
    body = resp.json()
    assert body["kind"] == "dependency_error"
    assert body["title"] == "Bad Gateway"


def test_party_cannot_set_provider_status(make_client):
    letter = make_mock_letter(status=LetterStatus.SIGNED)
    client = make_client(buyer(), make_mock_session(single=letter))

    resp = client.post("/api/documents/LOI-0A1B2C3D4E5F/status", json={"status": "viewed"})

    assert resp.status_code == 400
    assert resp.json()["kind"] == "validation_error"


# ---------------------------------------------------------------------------
# /api/esign/webhook
# ---------------------------------------------------------------------------


def _signature(body: bytes, key: str) -> str:
    return base64.b64encode(hmac.new(key.encode(), body, hashlib.sha256).digest()).decode()


def test_webhook_rejects_bad_signature(make_client, monkeypatch):
    monkeypatch.setattr(settings, "DOCUSIGN_HMAC_KEY", "connect-secret")
    client = make_client(buyer(), make_mock_session())

    with patch("src.services.loi.handle_webhook", new_callable=AsyncMock) as mock_handle:
        resp = client.post(
            "/api/esign/webhook",
            content=b'{"envelopeId": "env-1", "status": "completed"}',
            headers={"X-DocuSign-Signature-1": "not-a-signature"},
        )

    assert resp.status_code == 401
    assert resp.json()["kind"] == "unauthorized"
    mock_handle.assert_not_awaited()


def test_webhook_applies_signed_payload(make_client, monkeypatch):
    monkeypatch.setattr(settings, "DOCUSIGN_HMAC_KEY", "connect-secret")
    client = make_client(buyer(), make_mock_session())
    body = json.dumps({"envelopeId": "env-1", "status": "completed"}).encode()
    letter = make_mock_letter(status=LetterStatus.SIGNED, envelope_id="env-1")

    with patch(
        "src.services.loi.handle_webhook", new_callable=AsyncMock, return_value=letter,
    ) as mock_handle:
        resp = client.post(
            "/api/esign/webhook",
            content=body,
            headers={"X-DocuSign-Signature-1": _signature(body, "connect-secret")},
        )

    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "document_id": "LOI-0A1B2C3D4E5F",
        "letter_status": "signed",
    }
    assert mock_handle.await_args.args[1]["envelopeId"] == "env-1"


def test_webhook_refused_without_a_key(make_client, monkeypatch):
    monkeypatch.setattr(settings, "DOCUSIGN_HMAC_KEY", None)
    monkeypatch.setattr(settings, "DOCUSIGN_WEBHOOK_UNSIGNED_ALLOWED", False)
    client = make_client(buyer(), make_mock_session())

    with patch("src.services.loi.handle_webhook", new_callable=AsyncMock) as mock_handle:
        resp = client.post("/api/esign/webhook", json={"envelopeId": "env-x", "status": "sent"})

    assert resp.status_code == 401
    mock_handle.assert_not_awaited()


def test_webhook_for_unknown_envelope_is_acknowledged(make_client, monkeypatch):
    monkeypatch.setattr(settings, "DOCUSIGN_HMAC_KEY", None)
    monkeypatch.setattr(settings, "DOCUSIGN_WEBHOOK_UNSIGNED_ALLOWED", True)
    client = make_client(buyer(), make_mock_session())

    with patch("src.services.loi.handle_webhook", new_callable=AsyncMock, return_value=None):
        resp = client.post("/api/esign/webhook", json={"envelopeId": "env-x", "status": "sent"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "ignored"


def test_webhook_rejects_malformed_json(make_client, monkeypatch):
    monkeypatch.setattr(settings, "DOCUSIGN_HMAC_KEY", None)
    monkeypatch.setattr(settings, "DOCUSIGN_WEBHOOK_UNSIGNED_ALLOWED", True)
    client = make_client(buyer(), make_mock_session())

    resp = client.post("/api/esign/webhook", content=b"not json")

    assert resp.status_code == 400
    assert resp.json()["kind"] == "validation_error"
