# This project was developed with assistance from AI tools.
"""Earnest money deposit schemas."""

from datetime import datetime
from decimal import Decimal

from db.enums import EarnestMoneyStatus
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class PhoneVerificationRequest(RequestModel):
    phone_number: str = Field(min_length=7, max_length=30)
    confirmed: bool


class DepositVerificationRequest(RequestModel):
    approved: bool
    amount: Decimal | None = Field(default=None, gt=0)
    notes: str | None = Field(default=None, max_length=2000)


class EarnestMoneyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    amount: Decimal | None = None
    status: EarnestMoneyStatus
    phone_verified: bool
    phone_verified_at: datetime | None = None
    confirmation_number: str | None = None
    file_name: str | None = None
    uploaded_at: datetime | None = None
    verified_by: str | None = None
    verified_at: datetime | None = None
    notes: str | None = None
