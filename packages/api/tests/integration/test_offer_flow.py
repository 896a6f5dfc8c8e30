# This project was developed with assistance from AI tools.
"""Offer negotiation through acceptance with a real database."""

from decimal import Decimal

import pytest
from db import Offer, OfferStatus, Property, PropertyStatus, TaskValue, Transaction
from db.enums import UserRole
from sqlalchemy import func, select

from ..factories import buyer, make_user, seller
from .deals import list_property, open_deal, submit_offer, task_statuses

pytestmark = pytest.mark.integration


def second_buyer():
    return make_user("buyer-frank-006", UserRole.CLIENT, "Frank Buyer", "frank@example.com")


async def test_offer_below_floor_is_rejected(client_factory):
    seller_client = await client_factory(seller())
    buyer_client = await client_factory(buyer())
    prop = await list_property(seller_client, list_price="400000")

    resp = await submit_offer(buyer_client, prop["id"], "150000")

    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "validation_error"
    assert "must be at least $200,000" in body["detail"]


async def test_seller_minimum_raises_the_floor(client_factory):
    seller_client = await client_factory(seller())
    buyer_client = await client_factory(buyer())
    prop = await list_property(seller_client, list_price="400000", minimumOffer="350000")

    resp = await submit_offer(buyer_client, prop["id"], "300000")

    assert resp.status_code == 400
    assert "must be at least $350,000" in resp.json()["detail"]


async def test_seller_cannot_offer_on_own_listing(client_factory):
    seller_client = await client_factory(seller())
    prop = await list_property(seller_client)

    resp = await submit_offer(seller_client, prop["id"], "390000")

    assert resp.status_code == 400
    assert resp.json()["kind"] == "forbidden"


async def test_acceptance_opens_transaction_and_rejects_siblings(client_factory, db_service):
    seller_client = await client_factory(seller())
    alice = await client_factory(buyer())
    frank = await client_factory(second_buyer())
    prop = await list_property(seller_client, list_price="400000")

    winning = (await submit_offer(alice, prop["id"], "380000")).json()
    losing = (await submit_offer(frank, prop["id"], "370000")).json()

    resp = await seller_client.post(
        f"/api/offers/{winning['id']}/respond", json={"action": "accept"},
    )

    assert resp.status_code == 200
    decision = resp.json()
    assert decision["offer"]["status"] == "accepted"
    assert decision["rejected_offer_ids"] == [losing["id"]]
    txn_id = decision["transaction_id"]
    assert txn_id is not None

    sibling = (await frank.get(f"/api/offers/{losing['id']}")).json()
    assert sibling["status"] == "rejected"
    assert sibling["seller_response"] == "Property sold to another buyer"

    listing = (await seller_client.get(f"/api/properties/{prop['id']}")).json()
    assert listing["status"] == "under_contract"

    txn = (await alice.get(f"/api/transactions/{txn_id}")).json()
    assert txn["phase"] == "under_contract"
    assert txn["status"] == "pending"
    assert txn["progress"] == 0
    assert Decimal(txn["purchase_price"]) == Decimal("380000")
    assert txn["reference_code"].startswith("TXN-")

    statuses = await task_statuses(alice, txn_id)
    assert len(statuses) == 22
    assert set(statuses.values()) == {"pending"}

    async with db_service.session() as session:
        accepted = await session.scalar(
            select(func.count(Offer.id)).where(
                Offer.property_id == prop["id"], Offer.status == OfferStatus.ACCEPTED,
            )
        )
        ledger_rows = await session.scalar(
            select(func.count(TaskValue.id)).where(TaskValue.transaction_id == txn_id)
        )
    assert accepted == 1
    assert ledger_rows == 22


async def test_listing_under_contract_takes_no_new_offers(client_factory):
    deal = await open_deal(client_factory, buyer(), seller())
    latecomer = await client_factory(second_buyer())

    resp = await submit_offer(latecomer, deal["property_id"], "395000")

    assert resp.status_code == 404


async def test_rejected_sibling_cannot_be_accepted_later(client_factory):
    seller_client = await client_factory(seller())
    alice = await client_factory(buyer())
    frank = await client_factory(second_buyer())
    prop = await list_property(seller_client)
    winning = (await submit_offer(alice, prop["id"], "380000")).json()
    losing = (await submit_offer(frank, prop["id"], "370000")).json()
    await seller_client.post(f"/api/offers/{winning['id']}/respond", json={"action": "accept"})

    resp = await seller_client.post(
        f"/api/offers/{losing['id']}/respond", json={"action": "accept"},
    )

    assert resp.status_code == 400
    assert resp.json()["current_state"] == "rejected"


async def test_acceptance_also_rejects_a_countered_sibling(client_factory):
    seller_client = await client_factory(seller())
    alice = await client_factory(buyer())
    frank = await client_factory(second_buyer())
    prop = await list_property(seller_client, list_price="400000")
    winning = (await submit_offer(alice, prop["id"], "380000")).json()
    countered = (await submit_offer(frank, prop["id"], "370000")).json()
    await seller_client.post(
        f"/api/offers/{countered['id']}/respond",
        json={"action": "counter", "counterAmount": "390000"},
    )

    resp = await seller_client.post(
        f"/api/offers/{winning['id']}/respond", json={"action": "accept"},
    )

    assert resp.status_code == 200
    assert resp.json()["rejected_offer_ids"] == [countered["id"]]
    sibling = (await frank.get(f"/api/offers/{countered['id']}")).json()
    assert sibling["status"] == "rejected"
    assert Decimal(sibling["counter_amount"]) == Decimal("390000")


async def test_accepting_a_counter_uses_the_counter_price(client_factory):
    seller_client = await client_factory(seller())
    alice = await client_factory(buyer())
    prop = await list_property(seller_client)
    offer = (await submit_offer(alice, prop["id"], "370000")).json()

    counter = await seller_client.post(
        f"/api/offers/{offer['id']}/respond",
        json={"action": "counter", "counterAmount": "392500", "sellerResponse": "Meet me here"},
    )
    assert counter.status_code == 200
    assert counter.json()["offer"]["status"] == "countered"
    assert counter.json()["transaction_id"] is None

    accepted = await seller_client.post(
        f"/api/offers/{offer['id']}/respond", json={"action": "accept"},
    )
    txn_id = accepted.json()["transaction_id"]
    txn = (await alice.get(f"/api/transactions/{txn_id}")).json()
    assert Decimal(txn["purchase_price"]) == Decimal("392500")


async def test_withdrawn_offer_is_final(client_factory):
    seller_client = await client_factory(seller())
    alice = await client_factory(buyer())
    prop = await list_property(seller_client)
    offer = (await submit_offer(alice, prop["id"], "380000")).json()

    withdrawn = await alice.post(f"/api/offers/{offer['id']}/withdraw")
    assert withdrawn.status_code == 200
    assert withdrawn.json()["status"] == "withdrawn"
    assert withdrawn.json()["withdrawn_at"] is not None

    resp = await seller_client.post(
        f"/api/offers/{offer['id']}/respond", json={"action": "accept"},
    )
    assert resp.status_code == 400
    assert resp.json()["current_state"] == "withdrawn"


async def test_seller_sees_offers_on_listing(client_factory):
    seller_client = await client_factory(seller())
    alice = await client_factory(buyer())
    frank = await client_factory(second_buyer())
    prop = await list_property(seller_client)
    await submit_offer(alice, prop["id"], "380000")
    await submit_offer(frank, prop["id"], "375000")

    resp = await seller_client.get(f"/api/offers/property/{prop['id']}")
    forbidden = await alice.get(f"/api/offers/property/{prop['id']}")

    assert resp.status_code == 200
    assert resp.json()["pagination"]["total"] == 2
    assert forbidden.status_code == 403


async def test_accept_persists_property_and_transaction(client_factory, db_service):
    deal = await open_deal(client_factory, buyer(), seller())

    async with db_service.session() as session:
        prop = await session.get(Property, deal["property_id"])
        txn = await session.get(Transaction, deal["transaction_id"])
    assert prop.status == PropertyStatus.UNDER_CONTRACT
    assert txn.offer_id == deal["offer_id"]
