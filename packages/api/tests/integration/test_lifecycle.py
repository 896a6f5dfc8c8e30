# This project was developed with assistance from AI tools.
"""One deal driven from acceptance to closing through every phase."""

import pytest
from db import Property, PropertyStatus

from ..factories import (
    AGENT_ID,
    LENDER_ID,
    TITLE_OFFICER_ID,
    agent,
    buyer,
    lender,
    seller,
    title_officer,
)
from .deals import (
    complete_appraisal,
    deposit_earnest_money,
    open_deal,
    sign_purchase_agreement,
    task_ids_by_code,
    task_statuses,
)

pytestmark = pytest.mark.integration


def _ok(resp, expected=200):
    assert resp.status_code == expected, resp.text
    return resp.json()


async def _phase(client, txn_id):
    return _ok(await client.get(f"/api/transactions/{txn_id}"))["phase"]


async def test_deal_closes_through_every_phase(client_factory, db_service):
    deal = await open_deal(client_factory, buyer(), seller())
    txn_id = deal["transaction_id"]
    base = f"/api/transactions/{txn_id}"
    alice = await client_factory(buyer())
    bob = await client_factory(seller())
    carla = await client_factory(agent())
    dan = await client_factory(lender())
    grace = await client_factory(title_officer())

    _ok(await alice.patch(base, json={"agentId": AGENT_ID, "titleOfficerId": TITLE_OFFICER_ID}))
    ids = await task_ids_by_code(alice, txn_id)

    # under_contract
    await sign_purchase_agreement(alice, deal["offer_id"])
    assert await _phase(alice, txn_id) == "under_contract"
    deposit = await deposit_earnest_money(alice, grace, txn_id)
    assert deposit["status"] == "verified"
    assert await _phase(alice, txn_id) == "financing"

    # financing
    _ok(await alice.post(
        f"{base}/underwriting", json={"lenderId": LENDER_ID, "loanAmount": "304000"},
    ), 201)
    condition = _ok(await dan.post(
        f"{base}/underwriting/conditions", json={"title": "Verification of employment"},
    ), 201)
    _ok(await dan.post(f"{base}/underwriting/conditions/{condition['id']}/waive", json={}))
    assert (await complete_appraisal(dan, txn_id))["status"] == "approved"
    cleared = _ok(await alice.post(f"{base}/underwriting/clear-to-close"))
    assert cleared["status"] == "clear_to_close"
    assert await _phase(alice, txn_id) == "financing"
    assert _ok(await alice.post(f"{base}/underwriting/clear-to-close"))["loan_approved"] is True
    assert await _phase(alice, txn_id) == "insurance"

    # insurance
    policy = _ok(await alice.post(
        f"{base}/insurance", json={"carrier": "Prairie Mutual", "coverageLimit": "400000"},
    ), 201)
    assert policy["policy_number"]
    assert await _phase(alice, txn_id) == "closing_disclosure"

    # closing_disclosure
    _ok(await dan.post(
        f"{base}/closing/disclosure",
        files={"file": ("closing-disclosure.pdf", b"%PDF-1.7 disclosure", "application/pdf")},
    ), 201)
    assert await _phase(alice, txn_id) == "closing_disclosure"
    acknowledged = _ok(await alice.post(f"{base}/closing/disclosure/acknowledge"))
    assert acknowledged["acknowledged_at"] is not None
    assert await _phase(alice, txn_id) == "clear_to_close"

    # clear_to_close
    _ok(await carla.put(
        f"{base}/closing-appointment",
        json={"scheduledAt": "2026-05-29T10:00:00Z", "location": "Keystone Title, Suite 200"},
    ))
    _ok(await alice.post(
        f"{base}/closing-appointment/confirm",
        json={"photoIdReady": True, "certifiedFundsReady": True, "proofOfInsuranceReady": True},
    ))
    assert await _phase(alice, txn_id) == "clear_to_close"
    _ok(await alice.post(f"{base}/walk-through", json={"scheduledDate": "2026-05-28"}), 201)
    _ok(await alice.post(f"{base}/walk-through/complete", json={"notes": "All clear"}))
    assert await _phase(alice, txn_id) == "signing"

    # signing
    package = _ok(await carla.post(f"{base}/signing/documents", json={}), 201)
    assert len(package["data"]) == 6
    assert package["all_signed"] is False
    for doc in package["data"]:
        signer = alice if doc["signer_role"] == "buyer" else bob
        _ok(await signer.post(f"{base}/signing/documents/{doc['id']}/sign"))
    _ok(await dan.post(f"{base}/signing/confirm-funds", json={"method": "wire"}))
    assert await _phase(alice, txn_id) == "signing"
    _ok(await carla.post(f"{base}/signing/complete"))
    assert await _phase(alice, txn_id) == "funding"

    # funding
    funded = _ok(await dan.put(f"{base}/funding", json={"status": "funded", "keysDelivered": True}))
    assert funded["funded_at"] is not None
    assert await _phase(alice, txn_id) == "funding"
    _ok(await grace.post(f"{base}/funding/recording", json={"countyReference": "SANG-2026-00412"}))
    recorded = _ok(await grace.put(f"{base}/funding/recording", json={"status": "completed"}))
    assert recorded["recording_status"] == "completed"
    assert await _phase(alice, txn_id) == "moving"

    # moving
    _ok(await alice.put(f"{base}/moving/possession", json={"possessionDate": "2026-05-30"}))

    txn = _ok(await alice.get(base))
    assert txn["phase"] == "closed"
    assert txn["status"] == "completed"
    assert txn["completed_at"] is not None
    statuses = await task_statuses(alice, txn_id)
    assert statuses["possession_date_set"] == "completed"
    assert statuses["keys_delivered"] == "completed"
    async with db_service.session() as session:
        prop = await session.get(Property, deal["property_id"])
    assert prop.status == PropertyStatus.SOLD

    activity = _ok(await alice.get(f"{base}/activity"))["data"]
    advances = [a["details"]["to"] for a in activity if a["action"] == "phase_advanced"]
    assert sorted(advances) == sorted([
        "financing", "insurance", "closing_disclosure", "clear_to_close",
        "signing", "funding", "moving", "closed",
    ])

    refused = await alice.put(
        f"{base}/tasks/{ids['title_insurance_ordered']}", json={"status": "completed"},
    )
    assert refused.status_code == 400
    assert refused.json()["current_state"] == "completed"
