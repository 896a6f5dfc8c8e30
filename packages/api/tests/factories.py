# This project was developed with assistance from AI tools.
"""Shared test factory functions for creating mock objects and personas."""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import MagicMock

from db.enums import (
    LetterStatus,
    LetterType,
    OfferStatus,
    PropertyStatus,
    TransactionPhase,
    TransactionStatus,
    UserRole,
)

from src.core.auth import build_data_scope
from src.schemas.auth import UserContext

BUYER_ID = "buyer-alice-001"
SELLER_ID = "seller-bob-002"
AGENT_ID = "agent-carla-003"
LENDER_ID = "lender-dan-004"
OUTSIDER_ID = "outsider-eve-005"
TITLE_OFFICER_ID = "title-grace-007"
ADMIN_ID = "admin-user"

_NOW = datetime(2026, 3, 2, 15, 30, tzinfo=UTC)


def make_user(user_id: str, role: UserRole, name: str = "", email: str = "") -> UserContext:
    return UserContext(
        user_id=user_id,
        role=role,
        email=email or f"{user_id}@example.com",
        name=name or user_id,
        data_scope=build_data_scope(role, user_id),
    )


def buyer() -> UserContext:
    return make_user(BUYER_ID, UserRole.CLIENT, "Alice Buyer", "alice@example.com")


def seller() -> UserContext:
    return make_user(SELLER_ID, UserRole.CLIENT, "Bob Seller", "bob@example.com")


def agent() -> UserContext:
    return make_user(AGENT_ID, UserRole.AGENT, "Carla Agent")


def lender() -> UserContext:
    return make_user(LENDER_ID, UserRole.LENDER, "Dan Lender")


def outsider() -> UserContext:
    return make_user(OUTSIDER_ID, UserRole.CLIENT, "Eve Outsider")


def title_officer() -> UserContext:
    return make_user(TITLE_OFFICER_ID, UserRole.TITLE_OFFICER, "Grace Title")


def admin() -> UserContext:
    return make_user(ADMIN_ID, UserRole.ADMIN, "Admin")


def make_mock_property(
    id=10,
    seller_id=SELLER_ID,
    list_price="400000",
    minimum_offer=None,
    status=PropertyStatus.ACTIVE,
):
    """Create a mock Property ORM object."""
    prop = MagicMock()
    prop.id = id
    prop.seller_id = seller_id
    prop.street = "12 Elm Street"
    prop.city = "Springfield"
    prop.state = "IL"
    prop.zip_code = "62701"
    prop.county = "Sangamon"
    prop.list_price = Decimal(list_price)
    prop.minimum_offer = Decimal(minimum_offer) if minimum_offer is not None else None
    prop.status = status
    return prop


def make_mock_offer(
    id=20,
    property_id=10,
    buyer_id=BUYER_ID,
    seller_id=SELLER_ID,
    offer_amount="380000",
    status=OfferStatus.PENDING,
    counter_amount=None,
):
    """Create a mock Offer ORM object."""
    offer = MagicMock()
    offer.id = id
    offer.property_id = property_id
    offer.buyer_id = buyer_id
    offer.seller_id = seller_id
    offer.offer_amount = Decimal(offer_amount)
    offer.earnest_money = Decimal("10000")
    offer.counter_amount = Decimal(counter_amount) if counter_amount else None
    offer.status = status
    offer.seller_response = None
    return offer


def make_mock_transaction(
    id=30,
    phase=TransactionPhase.UNDER_CONTRACT,
    status=TransactionStatus.PENDING,
    buyer_id=BUYER_ID,
    seller_id=SELLER_ID,
    agent_id=AGENT_ID,
    lender_id=LENDER_ID,
    funds_confirmed=False,
):
    """Create a mock Transaction ORM object with every response field populated."""
    txn = MagicMock()
    txn.id = id
    txn.reference_code = "TXN-202603-ABC123"
    txn.property_id = 10
    txn.offer_id = 20
    txn.buyer_id = buyer_id
    txn.seller_id = seller_id
    txn.agent_id = agent_id
    txn.lender_id = lender_id
    txn.title_officer_id = None
    txn.purchase_price = Decimal("380000")
    txn.earnest_money = Decimal("10000")
    txn.commission = None
    txn.status = status
    txn.phase = phase
    txn.progress = 0
    txn.closing_date = date(2026, 5, 1)
    txn.phase_changed_at = None
    txn.funds_confirmed = funds_confirmed
    txn.completed_at = None
    txn.cancelled_at = None
    txn.cancellation_reason = None
    txn.created_at = _NOW
    txn.updated_at = _NOW
    return txn


def make_mock_letter(
    id=40,
    document_id="LOI-0A1B2C3D4E5F",
    status=LetterStatus.DRAFT,
    envelope_id=None,
    transaction_id=None,
    created_by=BUYER_ID,
):
    """Create a mock LetterOfIntent ORM object."""
    letter = MagicMock()
    letter.id = id
    letter.document_id = document_id
    letter.document_type = LetterType.LOI
    letter.status = status
    letter.offer_id = 20
    letter.transaction_id = transaction_id
    letter.created_by = created_by
    letter.parties = {
        "buyer": {"user_id": BUYER_ID, "name": "Alice Buyer", "email": "alice@example.com"},
        "seller": {"user_id": SELLER_ID, "name": "Bob Seller", "email": "bob@example.com"},
        "property": {"id": 10, "address": "12 Elm Street, Springfield, IL 62701"},
    }
    letter.financial_terms = {"purchase_price": "380000", "earnest_money": "10000"}
    letter.terms = {"inspection_contingency": True}
    letter.signatures = {
        "buyer": {"signed": False, "signed_at": None},
        "seller": {"signed": False, "signed_at": None},
    }
    letter.tracking = {"created_at": _NOW.isoformat(), "view_count": 0}
    letter.envelope_id = envelope_id
    letter.storage_key = "unassigned/letters/LOI-0A1B2C3D4E5F.pdf"
    letter.created_at = _NOW
    letter.updated_at = _NOW
    return letter
