# This project was developed with assistance from AI tools.
"""Unit tests for offer validation and seller responses."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from db.enums import OfferStatus, PropertyStatus

from src.core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from src.schemas.offer import OfferCreate, OfferRespondRequest
from src.services.offer import (
    minimum_offer_amount,
    respond_to_offer,
    submit_offer,
    withdraw_offer,
)

from .factories import buyer, make_mock_offer, make_mock_property, seller


def _session(*get_results):
    session = AsyncMock()
    session.get = AsyncMock(side_effect=list(get_results))
    session.add = MagicMock()
    return session


# ---------------------------------------------------------------------------
# Floor
# ---------------------------------------------------------------------------


def test_minimum_offer_is_half_the_list_price():
    assert minimum_offer_amount(make_mock_property(list_price="400000")) == Decimal("200000")


def test_seller_minimum_raises_the_floor():
    prop = make_mock_property(list_price="400000", minimum_offer="300000")
    assert minimum_offer_amount(prop) == Decimal("300000")


def test_seller_minimum_below_the_ratio_is_ignored():
    prop = make_mock_property(list_price="400000", minimum_offer="100000")
    assert minimum_offer_amount(prop) == Decimal("200000")


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def test_submit_below_floor_is_rejected():
    session = _session(make_mock_property(list_price="400000"))
    data = OfferCreate(property_id=10, offer_amount=Decimal("150000"))

    with pytest.raises(ValidationError, match=r"must be at least \$200,000"):
        await submit_offer(session, buyer(), data)
    session.add.assert_not_called()
    session.commit.assert_not_awaited()


async def test_submit_on_own_property_is_refused():
    session = _session(make_mock_property())
    data = OfferCreate(property_id=10, offer_amount=Decimal("380000"))

    with pytest.raises(ForbiddenError) as exc_info:
        await submit_offer(session, seller(), data)
    assert exc_info.value.status_code == 400


async def test_submit_on_missing_listing_is_not_found():
    session = _session(None)
    data = OfferCreate(property_id=99, offer_amount=Decimal("380000"))

    with pytest.raises(NotFoundError):
        await submit_offer(session, buyer(), data)


async def test_submit_on_listing_under_contract_is_not_found():
    session = _session(make_mock_property(status=PropertyStatus.UNDER_CONTRACT))
    data = OfferCreate(property_id=10, offer_amount=Decimal("380000"))

    with pytest.raises(NotFoundError):
        await submit_offer(session, buyer(), data)


@patch("src.services.offer.ensure_participant", new_callable=AsyncMock)
@patch("src.services.offer.publish")
async def test_submit_valid_offer_notifies_seller(mock_publish, _mock_participant):
    session = _session(make_mock_property())
    data = OfferCreate(property_id=10, offer_amount=Decimal("380000"))

    offer = await submit_offer(session, buyer(), data)

    assert offer.status == OfferStatus.PENDING
    assert offer.buyer_id == buyer().user_id
    session.commit.assert_awaited_once()
    event = mock_publish.call_args.args[0]
    assert event.event_type == "offer_submitted"
    assert event.recipient_ids == (seller().user_id,)


# ---------------------------------------------------------------------------
# Seller response
# ---------------------------------------------------------------------------


async def test_unknown_action_is_a_validation_error():
    session = _session()
    with pytest.raises(ValidationError, match="Invalid action 'maybe'"):
        await respond_to_offer(session, seller(), 20, OfferRespondRequest(action="maybe"))
    session.get.assert_not_awaited()


async def test_counter_requires_positive_amount():
    session = _session()
    with pytest.raises(ValidationError, match="counter amount"):
        await respond_to_offer(session, seller(), 20, OfferRespondRequest(action="counter"))


async def test_only_the_seller_may_respond():
    session = _session(make_mock_offer())
    with pytest.raises(ForbiddenError):
        await respond_to_offer(session, buyer(), 20, OfferRespondRequest(action="reject"))


async def test_cannot_respond_to_withdrawn_offer():
    session = _session(make_mock_offer(status=OfferStatus.WITHDRAWN))
    with pytest.raises(InvalidStateError) as exc_info:
        await respond_to_offer(session, seller(), 20, OfferRespondRequest(action="accept"))
    assert exc_info.value.current_state == "withdrawn"


async def test_accept_rereads_the_offer_under_the_lock():
    stale = make_mock_offer()
    fresh = make_mock_offer(status=OfferStatus.WITHDRAWN)
    session = _session(stale)
    session.execute = AsyncMock(side_effect=[
        MagicMock(scalar_one_or_none=MagicMock(return_value=make_mock_property())),
        MagicMock(scalar_one=MagicMock(return_value=fresh)),
    ])

    with pytest.raises(InvalidStateError) as exc_info:
        await respond_to_offer(session, seller(), 20, OfferRespondRequest(action="accept"))

    assert exc_info.value.current_state == "withdrawn"
    relock = session.execute.await_args_list[1].args[0]
    assert relock.get_execution_options()["populate_existing"] is True
    session.commit.assert_not_awaited()


@patch("src.services.offer.publish")
async def test_counter_records_amount_and_notifies_buyer(mock_publish):
    offer = make_mock_offer()
    session = _session(offer, make_mock_property())
    request = OfferRespondRequest(
        action="Counter", counter_amount=Decimal("395000"), seller_response="Meet me here",
    )

    result, txn, rejected = await respond_to_offer(session, seller(), 20, request)

    assert result.status == OfferStatus.COUNTERED
    assert result.counter_amount == Decimal("395000")
    assert txn is None and rejected == []
    event = mock_publish.call_args.args[0]
    assert event.event_type == "offer_countered"
    assert event.context["counter_amount"] == "395,000.00"


# ---------------------------------------------------------------------------
# Withdrawal
# ---------------------------------------------------------------------------


async def test_only_the_buyer_may_withdraw():
    session = _session(make_mock_offer())
    with pytest.raises(ForbiddenError):
        await withdraw_offer(session, seller(), 20)


async def test_accepted_offer_cannot_be_withdrawn():
    session = _session(make_mock_offer(status=OfferStatus.ACCEPTED))
    with pytest.raises(InvalidStateError):
        await withdraw_offer(session, buyer(), 20)
