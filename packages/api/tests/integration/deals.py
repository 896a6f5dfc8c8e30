# This project was developed with assistance from AI tools.
"""Request helpers that drive a deal through the public API."""

import base64
import hashlib
import hmac
import json

from db import Transaction

from src.core.config import settings
from src.services.esign import SIGNATURE_HEADER

from ..factories import AGENT_ID, LENDER_ID, TITLE_OFFICER_ID


async def list_property(client, list_price: str = "400000", **extra) -> dict:
    body = {
        "street": "12 Elm Street",
        "city": "Springfield",
        "state": "IL",
        "zipCode": "62701",
        "county": "Sangamon",
        "listPrice": list_price,
        "bedrooms": 3,
        **extra,
    }
    resp = await client.post("/api/properties", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def submit_offer(client, property_id: int, amount: str = "380000", **extra):
    body = {
        "propertyId": property_id,
        "offerAmount": amount,
        "earnestMoney": "10000",
        "financingType": "conventional",
        **extra,
    }
    return await client.post("/api/offers", json=body)


async def open_deal(client_factory, buyer_user, seller_user, amount: str = "380000") -> dict:
    """List a property, offer on it and accept; returns the ids involved."""
    seller_client = await client_factory(seller_user)
    buyer_client = await client_factory(buyer_user)

    prop = await list_property(seller_client)
    offer_resp = await submit_offer(buyer_client, prop["id"], amount)
    assert offer_resp.status_code == 201, offer_resp.text
    offer = offer_resp.json()

    decision = await seller_client.post(
        f"/api/offers/{offer['id']}/respond", json={"action": "accept"},
    )
    assert decision.status_code == 200, decision.text
    return {
        "property_id": prop["id"],
        "offer_id": offer["id"],
        "transaction_id": decision.json()["transaction_id"],
    }


async def task_ids_by_code(client, transaction_id: int) -> dict[str, int]:
    resp = await client.get(f"/api/transactions/{transaction_id}/tasks")
    assert resp.status_code == 200, resp.text
    return {
        task["code"]: task["task_id"]
        for phase in resp.json()["phases"]
        for task in phase["tasks"]
    }


async def task_statuses(client, transaction_id: int) -> dict[str, str]:
    resp = await client.get(f"/api/transactions/{transaction_id}/tasks")
    assert resp.status_code == 200, resp.text
    return {
        task["code"]: task["status"]
        for phase in resp.json()["phases"]
        for task in phase["tasks"]
    }


async def post_webhook(client, payload: dict):
    """POST a DocuSign Connect payload signed with the configured HMAC key."""
    body = json.dumps(payload).encode()
    digest = hmac.new(settings.DOCUSIGN_HMAC_KEY.encode(), body, hashlib.sha256).digest()
    return await client.post(
        "/api/esign/webhook",
        content=body,
        headers={
            "Content-Type": "application/json",
            SIGNATURE_HEADER: base64.b64encode(digest).decode(),
        },
    )


WIRE_INSTRUCTIONS = {
    "bankName": "First Prairie Bank",
    "accountName": "Keystone Title Escrow",
    "routingNumber": "071000013",
    "accountNumber": "000123456789",
    "verified": True,
}


async def sign_purchase_agreement(client, offer_id: int, envelope_id: str = "env-123") -> dict:
    """Generate and send the letter of intent, then sign it via a Connect webhook."""
    resp = await client.post("/api/documents/loi", json={"offerId": offer_id})
    assert resp.status_code == 201, resp.text
    letter = resp.json()
    sent = await client.post(f"/api/documents/{letter['document_id']}/send")
    assert sent.status_code == 200, sent.text
    signed = await post_webhook(client, {"envelopeId": envelope_id, "status": "completed"})
    assert signed.status_code == 200, signed.text
    return letter


async def deposit_earnest_money(
    buyer_client, title_client, transaction_id: int, amount: str = "10000",
) -> dict:
    """Wire instructions, phone check, confirmation upload and verification.

    The title officer must already be assigned to the transaction.
    """
    base = f"/api/transactions/{transaction_id}"
    wire = await title_client.put(f"{base}/closing/wire-instructions", json=WIRE_INSTRUCTIONS)
    assert wire.status_code == 200, wire.text
    phone = await buyer_client.post(
        f"{base}/earnest-money/phone-verification",
        json={"phoneNumber": "217-555-0100", "confirmed": True},
    )
    assert phone.status_code == 200, phone.text
    upload = await buyer_client.post(
        f"{base}/earnest-money/confirmation",
        data={"confirmationNumber": "FED-REF-2291"},
        files={"file": ("wire-confirmation.pdf", b"%PDF-1.7 wire", "application/pdf")},
    )
    assert upload.status_code == 200, upload.text
    verified = await title_client.post(
        f"{base}/earnest-money/verify", json={"approved": True, "amount": amount},
    )
    assert verified.status_code == 200, verified.text
    return verified.json()


async def complete_appraisal(lender_client, transaction_id: int, value: str = "390000") -> dict:
    """Order, schedule and complete an appraisal at ``value``."""
    base = f"/api/transactions/{transaction_id}/appraisal"
    ordered = await lender_client.post(base, json={"appraiserName": "Ruth Appraiser"})
    assert ordered.status_code == 201, ordered.text
    scheduled = await lender_client.post(
        f"{base}/schedule", json={"scheduledDate": "2026-04-10"},
    )
    assert scheduled.status_code == 200, scheduled.text
    done = await lender_client.post(
        f"{base}/complete", json={"appraisedValue": value, "reportReference": "APR-7731"},
    )
    assert done.status_code == 200, done.text
    return done.json()


async def assign_parties(client, transaction_id: int) -> None:
    """Put the agent, title officer and lender personas on the deal."""
    resp = await client.patch(
        f"/api/transactions/{transaction_id}",
        json={"agentId": AGENT_ID, "titleOfficerId": TITLE_OFFICER_ID, "lenderId": LENDER_ID},
    )
    assert resp.status_code == 200, resp.text


async def force_phase(db_service, transaction_id: int, phase) -> None:
    """Place the deal in a later phase without replaying every step before it."""
    async with db_service.session() as session:
        txn = await session.get(Transaction, transaction_id)
        txn.phase = phase
        await session.commit()
