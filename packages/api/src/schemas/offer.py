# This project was developed with assistance from AI tools.
"""Offer submission and negotiation schemas."""

from datetime import date, datetime
from decimal import Decimal

from db.enums import FinancingType, OfferStatus
from pydantic import BaseModel, ConfigDict, Field

from . import Pagination, RequestModel


class OfferCreate(RequestModel):
    """Buyer offer on a listed property."""

    property_id: int
    offer_amount: Decimal = Field(gt=0)
    earnest_money: Decimal | None = Field(default=None, ge=0)
    financing_type: FinancingType | None = None
    down_payment_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    inspection_contingency: bool = True
    financing_contingency: bool = True
    appraisal_contingency: bool = True
    sale_contingency: bool = False
    proposed_closing_date: date | None = None
    buyer_message: str | None = Field(default=None, max_length=5000)


class OfferRespondRequest(RequestModel):
    """Seller response. ``action`` is checked by the service so an unknown
    verb is reported as a validation error with a readable message."""

    action: str
    counter_amount: Decimal | None = None
    seller_response: str | None = Field(default=None, max_length=5000)


class OfferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    property_id: int
    buyer_id: str
    seller_id: str
    offer_amount: Decimal
    earnest_money: Decimal | None = None
    financing_type: FinancingType | None = None
    down_payment_percentage: Decimal | None = None
    inspection_contingency: bool
    financing_contingency: bool
    appraisal_contingency: bool
    sale_contingency: bool
    proposed_closing_date: date | None = None
    buyer_message: str | None = None
    status: OfferStatus
    counter_amount: Decimal | None = None
    seller_response: str | None = None
    submitted_at: datetime
    responded_at: datetime | None = None
    accepted_at: datetime | None = None
    withdrawn_at: datetime | None = None


class OfferDecisionResponse(BaseModel):
    """Response for POST /offers/{id}/respond."""

    offer: OfferResponse
    transaction_id: int | None = None
    rejected_offer_ids: list[int] = []


class OfferListResponse(BaseModel):
    data: list[OfferResponse]
    pagination: Pagination
