# This project was developed with assistance from AI tools.
"""Homeowners insurance schemas."""

from datetime import date, datetime
from decimal import Decimal

from db.enums import InsuranceStatus
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class PolicyPurchaseRequest(RequestModel):
    carrier: str = Field(min_length=1, max_length=200)
    coverage_type: str = Field(default="HO-3", max_length=50)
    coverage_limit: Decimal = Field(gt=0)
    deductible: Decimal | None = Field(default=None, ge=0)
    annual_premium: Decimal | None = Field(default=None, ge=0)
    effective_date: date | None = None


class PolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    carrier: str
    coverage_type: str
    coverage_limit: Decimal
    deductible: Decimal | None = None
    annual_premium: Decimal | None = None
    policy_number: str
    effective_date: date | None = None
    proof_storage_key: str | None = None
    status: InsuranceStatus
    created_at: datetime
