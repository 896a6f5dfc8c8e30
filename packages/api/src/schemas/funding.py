# This project was developed with assistance from AI tools.
"""Funding, disbursement and deed recording schemas."""

from datetime import datetime
from decimal import Decimal

from db.enums import FundingStatus, RecordingStatus
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class FundingUpdate(RequestModel):
    """Partial update; omitted or null fields keep their current value."""

    status: FundingStatus | None = None
    keys_delivered: bool | None = None
    documents_delivered: bool | None = None


class DisbursementCreate(RequestModel):
    payee: str = Field(min_length=1, max_length=200)
    amount: Decimal = Field(gt=0)
    method: str = Field(default="wire", max_length=50)


class RecordingInitiate(RequestModel):
    county_reference: str = Field(min_length=1, max_length=100)


class RecordingComplete(RequestModel):
    status: RecordingStatus
    recorded_at: datetime | None = None
    notes: str | None = Field(default=None, max_length=2000)


class FundingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    status: FundingStatus
    keys_delivered: bool
    documents_delivered: bool
    funded_at: datetime | None = None
    completed_at: datetime | None = None
    recording_status: RecordingStatus
    county_reference: str | None = None
    recording_completed_at: datetime | None = None
    updated_at: datetime


class DisbursementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payee: str
    amount: Decimal
    method: str
    status: str
    disbursed_at: datetime | None = None
    created_at: datetime


class RecordingLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: str
    status: str
    county_reference: str | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime


class FundingDetailResponse(BaseModel):
    funding: FundingResponse
    disbursements: list[DisbursementResponse] = []
    recording_log: list[RecordingLogResponse] = []
