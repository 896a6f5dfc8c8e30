# This project was developed with assistance from AI tools.
"""Cancellation, relisting and the admin purge."""

import pytest
import pytest_asyncio
from db import Offer, OfferStatus, Property, PropertyStatus, TaskValue, Transaction
from db.enums import UserRole
from sqlalchemy import func, select

from ..factories import admin, buyer, make_user, seller
from .deals import open_deal, submit_offer, task_ids_by_code

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def deal(client_factory):
    return await open_deal(client_factory, buyer(), seller())


async def _cancel(client, txn_id, reason="Buyer financing fell through"):
    return await client.post(f"/api/transactions/{txn_id}/cancel", json={"reason": reason})


async def test_cancel_terminates_offer_and_relists(client_factory, db_service, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())

    resp = await _cancel(alice, txn_id)

    assert resp.status_code == 200
    txn = resp.json()
    assert txn["status"] == "cancelled"
    assert txn["cancellation_reason"] == "Buyer financing fell through"
    assert txn["cancelled_at"] is not None

    async with db_service.session() as session:
        offer = await session.get(Offer, deal["offer_id"])
        prop = await session.get(Property, deal["property_id"])
    assert offer.status == OfferStatus.TERMINATED
    assert prop.status == PropertyStatus.ACTIVE


async def test_relisted_property_takes_new_offers(client_factory, deal):
    alice = await client_factory(buyer())
    await _cancel(alice, deal["transaction_id"])
    frank = await client_factory(
        make_user("buyer-frank-006", UserRole.CLIENT, "Frank Buyer", "frank@example.com")
    )

    resp = await submit_offer(frank, deal["property_id"], "385000")

    assert resp.status_code == 201
    assert resp.json()["status"] == "pending"


async def test_cancelled_transaction_refuses_mutation(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    ids = await task_ids_by_code(alice, txn_id)
    await _cancel(alice, txn_id)

    task_update = await alice.put(
        f"/api/transactions/{txn_id}/tasks/{ids['title_insurance_ordered']}",
        json={"status": "completed"},
    )
    underwriting = await alice.post(f"/api/transactions/{txn_id}/underwriting", json={})
    second_cancel = await _cancel(alice, txn_id)
    readable = await alice.get(f"/api/transactions/{txn_id}")

    for resp in (task_update, underwriting, second_cancel):
        assert resp.status_code == 400
        assert resp.json()["kind"] == "invalid_state"
        assert resp.json()["current_state"] == "cancelled"
    assert readable.status_code == 200


async def test_seller_may_cancel(client_factory, deal):
    bob = await client_factory(seller())

    resp = await _cancel(bob, deal["transaction_id"], reason="Seller withdrew")

    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


async def test_purge_removes_a_cancelled_deal(client_factory, db_service, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    root = await client_factory(admin())
    await _cancel(alice, txn_id)

    resp = await root.delete(f"/api/transactions/{txn_id}")

    assert resp.status_code == 204
    assert (await root.get(f"/api/transactions/{txn_id}")).status_code == 404
    async with db_service.session() as session:
        remaining = await session.scalar(
            select(func.count(TaskValue.id)).where(TaskValue.transaction_id == txn_id)
        )
        txn = await session.get(Transaction, txn_id)
    assert remaining == 0
    assert txn is None


async def test_purge_refuses_live_deal(client_factory, deal):
    root = await client_factory(admin())

    resp = await root.delete(f"/api/transactions/{deal['transaction_id']}")

    assert resp.status_code == 400
    assert resp.json()["current_state"] == "pending"


async def test_purge_is_admin_only(client_factory, deal):
    alice = await client_factory(buyer())
    await _cancel(alice, deal["transaction_id"])

    resp = await alice.delete(f"/api/transactions/{deal['transaction_id']}")

    assert resp.status_code == 403
