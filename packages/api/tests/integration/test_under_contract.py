# This project was developed with assistance from AI tools.
"""Earnest money, inspection, repairs and contingencies with a real database."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..factories import AGENT_ID, agent, buyer, seller, title_officer
from .deals import (
    WIRE_INSTRUCTIONS,
    assign_parties,
    open_deal,
    task_statuses,
)

pytestmark = pytest.mark.integration

WIRE_PDF = ("wire-confirmation.pdf", b"%PDF-1.7 wire", "application/pdf")
REPORT_PDF = ("inspection.pdf", b"%PDF-1.7 report", "application/pdf")


@pytest_asyncio.fixture
async def deal(client_factory):
    deal = await open_deal(client_factory, buyer(), seller())
    alice = await client_factory(buyer())
    await assign_parties(alice, deal["transaction_id"])
    return deal


async def _issue_wire_instructions(title_client, txn_id):
    resp = await title_client.put(
        f"/api/transactions/{txn_id}/closing/wire-instructions", json=WIRE_INSTRUCTIONS,
    )
    assert resp.status_code == 200, resp.text


async def _confirm_phone(buyer_client, txn_id, confirmed=True):
    return await buyer_client.post(
        f"/api/transactions/{txn_id}/earnest-money/phone-verification",
        json={"phoneNumber": "217-555-0100", "confirmed": confirmed},
    )


async def _upload_wire_confirmation(buyer_client, txn_id, number="FED-REF-2291"):
    return await buyer_client.post(
        f"/api/transactions/{txn_id}/earnest-money/confirmation",
        data={"confirmationNumber": number},
        files={"file": WIRE_PDF},
    )


# -- Earnest money --


async def test_phone_check_needs_wire_instructions(client_factory, deal):
    alice = await client_factory(buyer())

    resp = await _confirm_phone(alice, deal["transaction_id"])

    assert resp.status_code == 400
    assert resp.json()["current_state"] == "no_wire_instructions"


async def test_wire_confirmation_needs_a_phone_check(client_factory, storage, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    grace = await client_factory(title_officer())
    await _issue_wire_instructions(grace, txn_id)
    declined = await _confirm_phone(alice, txn_id, confirmed=False)
    assert declined.status_code == 200
    assert declined.json()["phone_verified"] is False

    resp = await _upload_wire_confirmation(alice, txn_id)

    assert resp.status_code == 400
    assert resp.json()["current_state"] == "phone_unverified"
    storage.upload_file.assert_not_awaited()


async def test_rejected_deposit_can_be_uploaded_again(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    grace = await client_factory(title_officer())
    await _issue_wire_instructions(grace, txn_id)
    await _confirm_phone(alice, txn_id)
    await _upload_wire_confirmation(alice, txn_id, number="WRONG-REF")

    rejected = await grace.post(
        f"/api/transactions/{txn_id}/earnest-money/verify",
        json={"approved": False, "notes": "Reference does not match the bank record"},
    )
    assert rejected.status_code == 200, rejected.text
    assert rejected.json()["status"] == "rejected"
    assert (await task_statuses(alice, txn_id))["earnest_money_deposited"] == "pending"

    again = await _upload_wire_confirmation(alice, txn_id)
    assert again.status_code == 200, again.text
    assert again.json()["status"] == "confirmation_uploaded"
    assert again.json()["confirmation_number"] == "FED-REF-2291"

    verified = await grace.post(
        f"/api/transactions/{txn_id}/earnest-money/verify",
        json={"approved": True, "amount": "12500"},
    )
    assert verified.status_code == 200, verified.text
    assert verified.json()["status"] == "verified"
    assert (await task_statuses(alice, txn_id))["earnest_money_deposited"] == "completed"
    txn = (await alice.get(f"/api/transactions/{txn_id}")).json()
    assert Decimal(txn["earnest_money"]) == Decimal("12500")


async def test_failed_commit_discards_the_uploaded_file(client_factory, storage, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    grace = await client_factory(title_officer())
    await _issue_wire_instructions(grace, txn_id)
    await _confirm_phone(alice, txn_id)
    failure = IntegrityError("UPDATE earnest_money_deposits", {}, Exception("constraint failed"))

    with patch.object(AsyncSession, "commit", new=AsyncMock(side_effect=failure)):
        resp = await _upload_wire_confirmation(alice, txn_id)

    assert resp.status_code == 409
    assert resp.json()["kind"] == "conflict"
    object_key = storage.upload_file.await_args.args[1]
    storage.delete_file.assert_awaited_once_with(object_key)
    deposit = (await alice.get(f"/api/transactions/{txn_id}/earnest-money")).json()
    assert deposit["status"] == "pending"
    assert deposit["file_name"] is None


# -- Inspection and repairs --


async def _completed_inspection(client, txn_id):
    scheduled = await client.post(
        f"/api/transactions/{txn_id}/inspections",
        json={"inspectorName": "Hank Inspector", "scheduledDate": "2026-04-02"},
    )
    assert scheduled.status_code == 201, scheduled.text
    inspection_id = scheduled.json()["id"]
    report = await client.post(
        f"/api/transactions/{txn_id}/inspections/{inspection_id}/report",
        data={"summary": "Roof flashing and GFCI outlets need work"},
        files={"file": REPORT_PDF},
    )
    assert report.status_code == 200, report.text
    return report.json()


async def test_repairs_need_a_completed_inspection(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    scheduled = await alice.post(
        f"/api/transactions/{txn_id}/inspections",
        json={"inspectorName": "Hank Inspector", "scheduledDate": "2026-04-02"},
    )

    resp = await alice.post(
        f"/api/transactions/{txn_id}/inspections/{scheduled.json()['id']}/repair-request",
        json={"items": [{"description": "Replace cracked window"}]},
    )

    assert resp.status_code == 400
    assert resp.json()["current_state"] == "scheduled"


async def test_report_completes_the_inspection_once(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())

    inspection = await _completed_inspection(alice, txn_id)

    assert inspection["status"] == "completed"
    assert inspection["report_file_name"] == "inspection.pdf"
    assert (await task_statuses(alice, txn_id))["home_inspection_completed"] == "completed"

    again = await alice.post(
        f"/api/transactions/{txn_id}/inspections/{inspection['id']}/report",
        files={"file": REPORT_PDF},
    )
    assert again.status_code == 409


async def test_repair_negotiation_satisfies_the_inspection_contingency(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    bob = await client_factory(seller())
    inspection = await _completed_inspection(alice, txn_id)

    created = await alice.post(
        f"/api/transactions/{txn_id}/inspections/{inspection['id']}/repair-request",
        json={
            "items": [
                {"description": "Reseal roof flashing", "priority": "high"},
                {"description": "Replace GFCI outlets", "priority": "safety"},
            ],
            "buyerNotes": "Licensed contractors only",
        },
    )
    assert created.status_code == 201, created.text
    request_id = created.json()["id"]
    roof, outlets = (item["id"] for item in created.json()["items"])

    no_terms = await bob.post(
        f"/api/transactions/{txn_id}/repair-requests/{request_id}/respond",
        json={"status": "negotiated"},
    )
    assert no_terms.status_code == 400

    negotiated = await bob.post(
        f"/api/transactions/{txn_id}/repair-requests/{request_id}/respond",
        json={
            "status": "negotiated",
            "negotiatedTerms": "Seller fixes outlets; $1,500 credit for the roof",
            "items": [
                {"itemId": roof, "response": "counter", "counterOffer": "$1,500 credit"},
                {"itemId": outlets, "response": "accept"},
            ],
        },
    )
    assert negotiated.status_code == 200, negotiated.text
    assert negotiated.json()["status"] == "negotiated"
    decisions = {item["id"]: item["seller_response"] for item in negotiated.json()["items"]}
    assert decisions == {roof: "counter", outlets: "accept"}

    accepted = await bob.post(
        f"/api/transactions/{txn_id}/repair-requests/{request_id}/respond",
        json={"status": "accepted"},
    )
    assert accepted.status_code == 200, accepted.text

    done = await bob.post(f"/api/transactions/{txn_id}/repair-requests/{request_id}/complete")
    assert done.status_code == 200, done.text
    assert done.json()["status"] == "completed"

    contingencies = (await alice.get(f"/api/transactions/{txn_id}/contingencies")).json()
    by_type = {c["contingency_type"]: c for c in contingencies}
    assert by_type["inspection"]["status"] == "satisfied"
    assert by_type["appraisal"]["status"] == "open"


async def test_only_the_seller_answers_repairs(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    inspection = await _completed_inspection(alice, txn_id)
    created = await alice.post(
        f"/api/transactions/{txn_id}/inspections/{inspection['id']}/repair-request",
        json={"items": [{"description": "Service the furnace"}]},
    )

    resp = await alice.post(
        f"/api/transactions/{txn_id}/repair-requests/{created.json()['id']}/respond",
        json={"status": "accepted"},
    )

    assert resp.status_code == 403


# -- Contingencies --


async def test_contingencies_follow_the_offer(client_factory, deal):
    alice = await client_factory(buyer())

    resp = await alice.get(f"/api/transactions/{deal['transaction_id']}/contingencies")

    assert resp.status_code == 200
    types = sorted(c["contingency_type"] for c in resp.json())
    assert types == ["appraisal", "financing", "inspection"]
    assert {c["status"] for c in resp.json()} == {"open"}


async def test_waived_contingency_keeps_no_deadline(client_factory, deal):
    txn_id = deal["transaction_id"]
    carla = await client_factory(agent())
    contingencies = (await carla.get(f"/api/transactions/{txn_id}/contingencies")).json()
    financing = next(c for c in contingencies if c["contingency_type"] == "financing")
    url = f"/api/transactions/{txn_id}/contingencies/{financing['id']}"

    moved = await carla.patch(url, json={"deadline": "2026-04-30"})
    assert moved.status_code == 200, moved.text
    assert moved.json()["deadline"] == "2026-04-30"

    waived = await carla.patch(url, json={"status": "waived", "notes": "Cash buyer"})
    assert waived.status_code == 200, waived.text
    assert waived.json()["status"] == "waived"
    assert waived.json()["resolved_by"] == AGENT_ID

    late = await carla.patch(url, json={"deadline": "2026-05-15"})
    assert late.status_code == 400
    assert late.json()["current_state"] == "waived"

    reopened = await carla.patch(url, json={"status": "open"})
    assert reopened.status_code == 400


async def test_seller_cannot_waive_buyer_contingencies(client_factory, deal):
    txn_id = deal["transaction_id"]
    bob = await client_factory(seller())
    alice = await client_factory(buyer())
    contingencies = (await alice.get(f"/api/transactions/{txn_id}/contingencies")).json()

    resp = await bob.patch(
        f"/api/transactions/{txn_id}/contingencies/{contingencies[0]['id']}",
        json={"status": "waived"},
    )

    assert resp.status_code == 403
