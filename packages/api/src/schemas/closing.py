# This project was developed with assistance from AI tools.
"""Loan estimate, closing disclosure, fee and discrepancy schemas."""

from datetime import datetime
from decimal import Decimal

from db.enums import DiscrepancyStatus, DisclosureStatus, FeePaidBy
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class FeeItem(RequestModel):
    name: str = Field(min_length=1, max_length=200)
    category: str | None = Field(default=None, max_length=100)
    amount: Decimal = Field(ge=0)
    paid_by: FeePaidBy = FeePaidBy.BUYER


class LoanEstimateRequest(RequestModel):
    loan_amount: Decimal = Field(gt=0)
    interest_rate: Decimal = Field(ge=0, le=30)
    term_months: int = Field(default=360, gt=0, le=480)
    estimated_cash_to_close: Decimal | None = Field(default=None, ge=0)
    fees: list[FeeItem] = []


class ClosingFeesRequest(RequestModel):
    """Replaces the full closing fee schedule."""

    fees: list[FeeItem]


class WireInstructionsRequest(RequestModel):
    bank_name: str = Field(min_length=1, max_length=200)
    account_name: str = Field(min_length=1, max_length=200)
    routing_number: str = Field(pattern=r"^\d{9}$")
    account_number: str = Field(pattern=r"^\d{4,17}$")
    reference: str | None = Field(default=None, max_length=100)
    verified: bool = False


class DiscrepancyCreate(RequestModel):
    fee_item: str = Field(min_length=1, max_length=200)
    estimated_amount: Decimal
    actual_amount: Decimal
    notes: str | None = Field(default=None, max_length=5000)


class DiscrepancyResolve(RequestModel):
    resolution_notes: str = Field(min_length=1, max_length=5000)


class FeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: str | None = None
    amount: Decimal
    paid_by: FeePaidBy


class LoanEstimateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_amount: Decimal
    interest_rate: Decimal
    term_months: int
    estimated_cash_to_close: Decimal | None = None
    issued_at: datetime
    fees: list[FeeResponse] = []


class DisclosureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    status: DisclosureStatus
    file_name: str | None = None
    storage_key: str | None = None
    uploaded_by: str | None = None
    received_at: datetime
    acknowledged_at: datetime | None = None


class WireInstructionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bank_name: str
    account_name: str
    routing_number: str
    account_number_last4: str
    reference: str | None = None
    verified: bool


class DiscrepancyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    fee_item: str
    estimated_amount: Decimal
    actual_amount: Decimal
    difference: Decimal
    notes: str | None = None
    status: DiscrepancyStatus
    resolution_notes: str | None = None
    reported_by: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None


class ClosingSummaryResponse(BaseModel):
    """Everything the buyer needs to review before closing."""

    transaction_id: int
    disclosure: DisclosureResponse | None = None
    closing_fees: list[FeeResponse] = []
    total_due: Decimal
    loan_estimate: LoanEstimateResponse | None = None
    wire_instructions: WireInstructionsResponse | None = None
    discrepancies: list[DiscrepancyResponse] = []
