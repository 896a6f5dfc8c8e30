# This project was developed with assistance from AI tools.
"""Appraisal outcomes and the closing appointment with a real database."""

from decimal import Decimal

import pytest
import pytest_asyncio

from ..factories import agent, buyer, lender, seller
from .deals import assign_parties, complete_appraisal, open_deal, task_statuses

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def deal(client_factory):
    deal = await open_deal(client_factory, buyer(), seller(), amount="380000")
    alice = await client_factory(buyer())
    await assign_parties(alice, deal["transaction_id"])
    return deal


async def _contingency_status(client, txn_id, contingency_type):
    rows = (await client.get(f"/api/transactions/{txn_id}/contingencies")).json()
    return next(c["status"] for c in rows if c["contingency_type"] == contingency_type)


async def test_appraisal_at_price_is_approved(client_factory, deal):
    txn_id = deal["transaction_id"]
    dan = await client_factory(lender())

    appraisal = await complete_appraisal(dan, txn_id, value="385000")

    assert appraisal["status"] == "approved"
    assert Decimal(appraisal["appraisal_gap"]) == Decimal("-5000")
    assert (await task_statuses(dan, txn_id))["appraisal_completed"] == "completed"
    assert await _contingency_status(dan, txn_id, "appraisal") == "satisfied"

    again = await dan.post(f"/api/transactions/{txn_id}/appraisal", json={})
    assert again.status_code == 409


async def test_low_appraisal_waits_for_a_resolution(client_factory, deal):
    txn_id = deal["transaction_id"]
    dan = await client_factory(lender())

    appraisal = await complete_appraisal(dan, txn_id, value="360000")

    assert appraisal["status"] == "low_appraisal"
    assert Decimal(appraisal["appraisal_gap"]) == Decimal("20000")
    assert (await task_statuses(dan, txn_id))["appraisal_completed"] == "pending"
    assert await _contingency_status(dan, txn_id, "appraisal") == "open"


async def test_seller_price_reduction_resolves_a_low_appraisal(client_factory, deal):
    txn_id = deal["transaction_id"]
    dan = await client_factory(lender())
    alice = await client_factory(buyer())
    bob = await client_factory(seller())
    await complete_appraisal(dan, txn_id, value="360000")
    url = f"/api/transactions/{txn_id}/appraisal/resolve"

    reduce_to = {"resolution": "price_reduced", "newPurchasePrice": "360000"}
    by_buyer = await alice.post(url, json=reduce_to)
    assert by_buyer.status_code == 403

    not_lower = await bob.post(url, json={**reduce_to, "newPurchasePrice": "380000"})
    assert not_lower.status_code == 400
    assert "below the current price" in not_lower.json()["detail"]

    resolved = await bob.post(url, json=reduce_to)
    assert resolved.status_code == 200, resolved.text
    assert resolved.json()["status"] == "approved"
    assert resolved.json()["resolution"] == "price_reduced"

    txn = (await alice.get(f"/api/transactions/{txn_id}")).json()
    assert Decimal(txn["purchase_price"]) == Decimal("360000")
    assert (await task_statuses(alice, txn_id))["appraisal_completed"] == "completed"
    assert await _contingency_status(alice, txn_id, "appraisal") == "satisfied"


async def test_buyer_may_walk_away_after_a_low_appraisal(client_factory, deal):
    txn_id = deal["transaction_id"]
    dan = await client_factory(lender())
    alice = await client_factory(buyer())
    bob = await client_factory(seller())
    await complete_appraisal(dan, txn_id, value="340000")

    resp = await alice.post(
        f"/api/transactions/{txn_id}/appraisal/resolve",
        json={"resolution": "contract_cancelled", "notes": "Cannot cover the gap"},
    )

    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "cancelled"
    txn = (await alice.get(f"/api/transactions/{txn_id}")).json()
    assert txn["status"] == "cancelled"
    assert txn["cancellation_reason"] == "Cannot cover the gap"
    listing = (await bob.get(f"/api/properties/{deal['property_id']}")).json()
    assert listing["status"] == "active"


async def test_resolution_needs_a_low_appraisal(client_factory, deal):
    txn_id = deal["transaction_id"]
    dan = await client_factory(lender())
    alice = await client_factory(buyer())
    await complete_appraisal(dan, txn_id, value="390000")

    resp = await alice.post(
        f"/api/transactions/{txn_id}/appraisal/resolve", json={"resolution": "proceed_as_is"},
    )

    assert resp.status_code == 400
    assert resp.json()["current_state"] == "approved"


# -- Closing appointment --


APPOINTMENT = {"scheduledAt": "2026-05-29T14:00:00Z", "location": "Keystone Title, Suite 200"}
READY = {"photoIdReady": True, "certifiedFundsReady": True, "proofOfInsuranceReady": True}


async def test_buyer_confirms_once_everything_is_ready(client_factory, deal):
    txn_id = deal["transaction_id"]
    carla = await client_factory(agent())
    alice = await client_factory(buyer())
    url = f"/api/transactions/{txn_id}/closing-appointment"

    scheduled = await carla.put(url, json=APPOINTMENT)
    assert scheduled.status_code == 200, scheduled.text
    assert scheduled.json()["buyer_confirmed"] is False

    missing = await alice.post(
        f"{url}/confirm", json={"photoIdReady": True, "certifiedFundsReady": True},
    )
    assert missing.status_code == 400
    assert missing.json()["detail"] == (
        "Bring the following before confirming: proof of homeowner's insurance"
    )

    confirmed = await alice.post(f"{url}/confirm", json=READY)
    assert confirmed.status_code == 200, confirmed.text
    assert confirmed.json()["buyer_confirmed"] is True
    assert confirmed.json()["confirmed_at"] is not None
    assert (await task_statuses(alice, txn_id))["closing_appointment_confirmed"] == "completed"


async def test_moving_the_appointment_needs_a_new_confirmation(client_factory, deal):
    txn_id = deal["transaction_id"]
    carla = await client_factory(agent())
    alice = await client_factory(buyer())
    url = f"/api/transactions/{txn_id}/closing-appointment"
    await carla.put(url, json=APPOINTMENT)
    await alice.post(f"{url}/confirm", json=READY)

    moved = await carla.put(url, json={**APPOINTMENT, "scheduledAt": "2026-06-02T10:00:00Z"})

    assert moved.status_code == 200, moved.text
    body = moved.json()
    assert body["buyer_confirmed"] is False
    assert body["photo_id_ready"] is False
    assert (await task_statuses(alice, txn_id))["closing_appointment_confirmed"] == "pending"


async def test_only_the_buyer_confirms_the_appointment(client_factory, deal):
    txn_id = deal["transaction_id"]
    carla = await client_factory(agent())
    bob = await client_factory(seller())
    url = f"/api/transactions/{txn_id}/closing-appointment"
    await carla.put(url, json=APPOINTMENT)

    resp = await bob.post(f"{url}/confirm", json=READY)

    assert resp.status_code == 403
