# This project was developed with assistance from AI tools.
"""Tests for the central transition tables."""

import pytest
from db.enums import (
    LetterStatus,
    OfferStatus,
    TransactionPhase,
    TransactionStatus,
    UnderwritingState,
)

from src.core.errors import InvalidStateError
from src.services.state_machine import can_transition, require_transition


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (OfferStatus.PENDING, OfferStatus.ACCEPTED, True),
        (OfferStatus.COUNTERED, OfferStatus.ACCEPTED, True),
        (OfferStatus.COUNTERED, OfferStatus.COUNTERED, False),
        (OfferStatus.REJECTED, OfferStatus.ACCEPTED, False),
        (OfferStatus.ACCEPTED, OfferStatus.WITHDRAWN, False),
        (OfferStatus.ACCEPTED, OfferStatus.TERMINATED, True),
        (UnderwritingState.SUBMITTED, UnderwritingState.CLEAR_TO_CLOSE, False),
        (UnderwritingState.CONDITIONS_REQUESTED, UnderwritingState.CLEAR_TO_CLOSE, True),
        (UnderwritingState.CONDITIONS_REQUESTED, UnderwritingState.APPROVED, False),
        (UnderwritingState.APPROVED, UnderwritingState.CONDITIONS_REQUESTED, True),
        (TransactionStatus.CANCELLED, TransactionStatus.IN_PROGRESS, False),
        (TransactionStatus.ON_HOLD, TransactionStatus.IN_PROGRESS, True),
        (LetterStatus.DRAFT, LetterStatus.SIGNED, False),
        (LetterStatus.VIEWED, LetterStatus.SIGNED, True),
    ],
)
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_require_transition_reports_current_state():
    with pytest.raises(InvalidStateError) as exc_info:
        require_transition(OfferStatus.WITHDRAWN, OfferStatus.ACCEPTED, entity="offer")
    assert exc_info.value.current_state == "withdrawn"
    assert exc_info.value.status_code == 400
    assert "offer" in exc_info.value.message


def test_phase_order_and_successor():
    phases = TransactionPhase.ordered()
    assert phases[0] == TransactionPhase.initial() == TransactionPhase.UNDER_CONTRACT
    assert phases[-1] == TransactionPhase.CLOSED
    assert TransactionPhase.FUNDING.next_phase() == TransactionPhase.MOVING
    assert TransactionPhase.CLOSED.next_phase() is None
    assert TransactionPhase.CLEAR_TO_CLOSE.position > TransactionPhase.FINANCING.position
