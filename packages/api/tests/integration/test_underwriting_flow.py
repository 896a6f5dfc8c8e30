# This project was developed with assistance from AI tools.
"""Underwriting conditions, documents and the clear-to-close gate end to end."""

import pytest
import pytest_asyncio

from ..factories import LENDER_ID, buyer, lender, outsider, seller
from .deals import open_deal, task_statuses

pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def deal(client_factory):
    return await open_deal(client_factory, buyer(), seller())


async def _open_file(client, txn_id):
    resp = await client.post(
        f"/api/transactions/{txn_id}/underwriting",
        json={"lenderId": LENDER_ID, "loanAmount": "304000"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _add_condition(client, txn_id, title="Recent paystub", document_type="paystub"):
    resp = await client.post(
        f"/api/transactions/{txn_id}/underwriting/conditions",
        json={"title": title, "documentType": document_type},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _check(client, txn_id):
    resp = await client.post(f"/api/transactions/{txn_id}/underwriting/clear-to-close")
    assert resp.status_code == 200, resp.text
    return resp.json()


async def test_condition_to_approval(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    dan = await client_factory(lender())

    opened = await _open_file(alice, txn_id)
    assert opened["status"] == "submitted"
    assert opened["pending_documents"] == 0
    txn = (await alice.get(f"/api/transactions/{txn_id}")).json()
    assert txn["lender_id"] == LENDER_ID

    condition = await _add_condition(dan, txn_id)
    assert condition["status"] == "pending"
    file = (await dan.get(f"/api/transactions/{txn_id}/underwriting")).json()
    assert file["status"]["status"] == "conditions_requested"
    assert file["status"]["pending_documents"] == 1

    blocked = await _check(alice, txn_id)
    assert blocked["transitioned"] is False
    assert blocked["status"] == "conditions_requested"
    assert blocked["pending_documents"] == 1
    assert blocked["pending_conditions"] == 1

    submitted = await alice.post(
        f"/api/transactions/{txn_id}/underwriting/documents",
        json={"documents": [{"documentType": "paystub", "documentName": "paystub-march.pdf"}]},
    )
    assert submitted.status_code == 201
    assert submitted.json()["status"]["pending_documents"] == 0
    assert submitted.json()["satisfied_condition_ids"] == [condition["id"]]

    ctc = await _check(alice, txn_id)
    assert ctc["transitioned"] is True
    assert ctc["status"] == "clear_to_close"
    assert ctc["clear_to_close"] is True
    assert ctc["loan_approved"] is False
    assert ctc["clear_to_close_date"] is not None
    assert ctc["loan_approval_date"] is None

    approved = await _check(alice, txn_id)
    assert approved["transitioned"] is True
    assert approved["status"] == "approved"
    assert approved["loan_approved"] is True
    assert approved["loan_approval_date"] is not None

    statuses = await task_statuses(alice, txn_id)
    assert statuses["mortgage_application_submitted"] == "completed"
    assert statuses["underwriting_clear_to_close"] == "completed"
    assert statuses["loan_approved"] == "completed"


async def test_repeated_check_does_not_restamp_dates(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    dan = await client_factory(lender())
    await _open_file(alice, txn_id)
    condition = await _add_condition(dan, txn_id)
    waived = await dan.post(
        f"/api/transactions/{txn_id}/underwriting/conditions/{condition['id']}/waive",
        json={"reason": "Verified by phone"},
    )
    assert waived.json()["status"] == "waived"
    await _check(alice, txn_id)
    approved = await _check(alice, txn_id)

    again = await _check(alice, txn_id)

    assert again["transitioned"] is False
    assert again["status"] == "approved"
    assert again["clear_to_close_date"] == approved["clear_to_close_date"]
    assert again["loan_approval_date"] == approved["loan_approval_date"]


async def test_pending_counter_never_goes_negative(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    dan = await client_factory(lender())
    await _open_file(alice, txn_id)
    await _add_condition(dan, txn_id)

    resp = await alice.post(
        f"/api/transactions/{txn_id}/underwriting/documents",
        json={
            "documents": [
                {"documentType": "paystub", "documentName": "paystub-march.pdf"},
                {"documentType": "bank_statement", "documentName": "statement.pdf"},
            ]
        },
    )

    assert resp.status_code == 201
    assert resp.json()["status"]["pending_documents"] == 0
    assert len(resp.json()["documents"]) == 2


async def test_new_condition_reopens_an_approved_file(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    dan = await client_factory(lender())
    await _open_file(alice, txn_id)
    first = await _add_condition(dan, txn_id)
    await dan.post(
        f"/api/transactions/{txn_id}/underwriting/conditions/{first['id']}/waive", json={},
    )
    await _check(alice, txn_id)
    assert (await _check(alice, txn_id))["status"] == "approved"

    await _add_condition(dan, txn_id, title="Updated appraisal", document_type="appraisal")

    file = (await dan.get(f"/api/transactions/{txn_id}/underwriting")).json()["status"]
    assert file["status"] == "conditions_requested"
    assert file["pending_documents"] == 1
    assert file["clear_to_close_date"] is None
    assert file["loan_approval_date"] is None
    statuses = await task_statuses(alice, txn_id)
    assert statuses["underwriting_clear_to_close"] == "pending"
    assert statuses["loan_approved"] == "pending"


async def test_only_the_deal_lender_issues_conditions(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    await _open_file(alice, txn_id)
    seller_client = await client_factory(seller())
    eve = await client_factory(outsider())

    as_seller = await seller_client.post(
        f"/api/transactions/{txn_id}/underwriting/conditions", json={"title": "Paystub"},
    )
    as_outsider = await eve.get(f"/api/transactions/{txn_id}/underwriting")

    assert as_seller.status_code == 403
    assert as_outsider.status_code == 404


async def test_second_file_conflicts(client_factory, deal):
    txn_id = deal["transaction_id"]
    alice = await client_factory(buyer())
    await _open_file(alice, txn_id)

    resp = await alice.post(f"/api/transactions/{txn_id}/underwriting", json={})

    assert resp.status_code == 409
    assert resp.json()["kind"] == "conflict"
