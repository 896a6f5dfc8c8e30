# This project was developed with assistance from AI tools.
"""Letter of intent generation, sending and the DocuSign webhook."""

from decimal import Decimal

import pytest
import pytest_asyncio

from src.core.errors import DependencyError

from ..factories import buyer, outsider, seller
from .deals import open_deal, post_webhook, task_statuses

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def deal(client_factory):
    return await open_deal(client_factory, buyer(), seller())


async def _generate(client, offer_id):
    resp = await client.post("/api/documents/loi", json={"offerId": offer_id})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _completed_payload(envelope_id="env-123"):
    return {
        "envelopeId": envelope_id,
        "status": "completed",
        "recipientStatuses": [
            {
                "email": "alice@example.com",
                "status": "completed",
                "signedDateTime": "2026-03-05T10:00:00Z",
            },
            {
                "email": "BOB@example.com",
                "status": "completed",
                "signedDateTime": "2026-03-05T11:30:00Z",
            },
        ],
    }


async def test_generate_builds_a_draft_from_the_offer(client_factory, storage, deal):
    alice = await client_factory(buyer())

    letter = await _generate(alice, deal["offer_id"])

    assert letter["status"] == "draft"
    assert letter["document_id"].startswith("LOI-")
    assert letter["transaction_id"] == deal["transaction_id"]
    assert letter["parties"]["buyer"]["email"] == "alice@example.com"
    assert letter["parties"]["seller"]["name"] == "Bob Seller"
    assert Decimal(letter["financial_terms"]["purchase_price"]) == Decimal("380000")
    assert letter["signatures"]["buyer"]["signed"] is False

    pdf_bytes, key, content_type = storage.upload_file.await_args.args
    assert pdf_bytes.startswith(b"%PDF")
    assert key.startswith(f"transactions/{deal['transaction_id']}/letters/")
    assert content_type == "application/pdf"


async def test_outsider_cannot_generate_or_read(client_factory, deal):
    alice = await client_factory(buyer())
    eve = await client_factory(outsider())
    letter = await _generate(alice, deal["offer_id"])

    generate = await eve.post("/api/documents/loi", json={"offerId": deal["offer_id"]})
    read = await eve.get(f"/api/documents/{letter['document_id']}")

    assert generate.status_code == 403
    assert read.status_code == 403


async def test_send_creates_an_envelope(client_factory, esign, deal):
    alice = await client_factory(buyer())
    letter = await _generate(alice, deal["offer_id"])

    resp = await alice.post(f"/api/documents/{letter['document_id']}/send")

    assert resp.status_code == 200
    sent = resp.json()
    assert sent["status"] == "sent"
    assert sent["envelope_id"] == "env-123"
    assert "sent_at" in sent["tracking"]
    signers = esign.create_envelope.await_args.kwargs["signers"]
    assert signers["buyer"]["email"] == "alice@example.com"
    assert signers["seller"]["email"] == "bob@example.com"


async def test_send_failure_leaves_a_draft(client_factory, esign, deal):
    esign.create_envelope.side_effect = DependencyError("E-signature provider error: timeout")
    alice = await client_factory(buyer())
    letter = await _generate(alice, deal["offer_id"])

    resp = await alice.post(f"/api/documents/{letter['document_id']}/send")

    assert resp.status_code == 502
    assert resp.json()["kind"] == "dependency_error"
    current = (await alice.get(f"/api/documents/{letter['document_id']}")).json()
    assert current["status"] == "draft"
    assert current["envelope_id"] is None


async def test_signed_envelope_completes_the_purchase_agreement_task(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    letter = await _generate(alice, deal["offer_id"])
    await alice.post(f"/api/documents/{letter['document_id']}/send")

    resp = await post_webhook(alice, _completed_payload())

    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "document_id": letter["document_id"],
        "letter_status": "signed",
    }
    signed = (await alice.get(f"/api/documents/{letter['document_id']}")).json()
    assert signed["signatures"]["buyer"]["signed"] is True
    assert signed["signatures"]["seller"]["signed_at"] == "2026-03-05T11:30:00Z"
    assert "signed_at" in signed["tracking"]
    statuses = await task_statuses(alice, txn_id)
    assert statuses["purchase_agreement_signed"] == "completed"

    replay = await post_webhook(alice, _completed_payload())
    assert replay.status_code == 200
    assert replay.json()["letter_status"] == "signed"


async def test_out_of_order_webhook_is_ignored(client_factory, deal):
    alice = await client_factory(buyer())
    letter = await _generate(alice, deal["offer_id"])
    await alice.post(f"/api/documents/{letter['document_id']}/send")
    await post_webhook(alice, _completed_payload())

    late = await post_webhook(alice, {"envelopeId": "env-123", "status": "delivered"})

    assert late.status_code == 200
    assert late.json()["letter_status"] == "signed"


async def test_unknown_envelope_is_acknowledged(client_factory, deal):
    alice = await client_factory(buyer())

    resp = await post_webhook(alice, _completed_payload("env-unknown"))

    assert resp.status_code == 200
    assert resp.json()["status"] == "ignored"


async def test_unsigned_webhook_leaves_the_letter_untouched(client_factory, deal):
    alice = await client_factory(buyer())
    letter = await _generate(alice, deal["offer_id"])
    await alice.post(f"/api/documents/{letter['document_id']}/send")

    resp = await alice.post("/api/esign/webhook", json=_completed_payload())

    assert resp.status_code == 401
    current = (await alice.get(f"/api/documents/{letter['document_id']}")).json()
    assert current["status"] == "sent"
    statuses = await task_statuses(alice, deal["transaction_id"])
    assert statuses["purchase_agreement_signed"] == "pending"


async def test_party_marks_viewed_and_accepts(client_factory, deal):
    alice = await client_factory(buyer())
    bob = await client_factory(seller())
    letter = await _generate(alice, deal["offer_id"])
    await alice.post(f"/api/documents/{letter['document_id']}/send")

    viewed = await bob.post(f"/api/documents/{letter['document_id']}/viewed")
    assert viewed.json()["status"] == "viewed"
    assert viewed.json()["tracking"]["view_count"] == 1

    too_early = await bob.post(
        f"/api/documents/{letter['document_id']}/status", json={"status": "accepted"},
    )
    assert too_early.status_code == 400
    assert too_early.json()["current_state"] == "viewed"

    await post_webhook(alice, _completed_payload())
    accepted = await bob.post(
        f"/api/documents/{letter['document_id']}/status",
        json={"status": "accepted", "notes": "Looks good"},
    )
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert accepted.json()["tracking"]["notes"] == "Looks good"


async def test_list_documents_is_scoped_to_parties(client_factory, deal):
    alice = await client_factory(buyer())
    eve = await client_factory(outsider())
    await _generate(alice, deal["offer_id"])

    mine = (await alice.get("/api/documents")).json()
    theirs = (await eve.get("/api/documents")).json()

    assert mine["pagination"]["total"] == 1
    assert theirs["pagination"]["total"] == 0
