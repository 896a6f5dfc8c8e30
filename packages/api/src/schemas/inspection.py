# This project was developed with assistance from AI tools.
"""Home inspection and repair request schemas."""

from datetime import date, datetime
from decimal import Decimal

from db.enums import InspectionStatus, RepairRequestStatus, RepairResponse
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class InspectionCreate(RequestModel):
    inspector_name: str = Field(min_length=1, max_length=200)
    inspector_company: str | None = Field(default=None, max_length=200)
    scheduled_date: date
    inspection_fee: Decimal | None = Field(default=None, ge=0)


class RepairItemCreate(RequestModel):
    description: str = Field(min_length=1, max_length=5000)
    priority: str = Field(default="medium", pattern=r"^(low|medium|high|safety)$")
    requested_action: str | None = Field(default=None, max_length=2000)


class RepairRequestCreate(RequestModel):
    items: list[RepairItemCreate] = Field(min_length=1)
    buyer_notes: str | None = Field(default=None, max_length=5000)
    deadline_date: date | None = None


class RepairItemDecision(RequestModel):
    item_id: int
    response: RepairResponse
    counter_offer: str | None = Field(default=None, max_length=2000)


class RepairResponseRequest(RequestModel):
    status: RepairRequestStatus
    seller_response: str | None = Field(default=None, max_length=5000)
    negotiated_terms: str | None = Field(default=None, max_length=5000)
    items: list[RepairItemDecision] = []


class RepairItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    priority: str
    requested_action: str | None = None
    seller_response: RepairResponse | None = None
    counter_offer: str | None = None


class RepairRequestResponse(BaseModel):
    id: int
    inspection_id: int
    status: RepairRequestStatus
    buyer_notes: str | None = None
    deadline_date: date | None = None
    seller_response: str | None = None
    negotiated_terms: str | None = None
    responded_at: datetime | None = None
    completed_at: datetime | None = None
    items: list[RepairItemResponse] = []


class InspectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    inspector_name: str
    inspector_company: str | None = None
    scheduled_date: date
    inspection_fee: Decimal | None = None
    status: InspectionStatus
    report_file_name: str | None = None
    summary: str | None = None
    completed_at: datetime | None = None
    repair_request: RepairRequestResponse | None = None
