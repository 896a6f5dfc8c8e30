# This project was developed with assistance from AI tools.
"""Appraisal schemas."""

from datetime import date, datetime
from decimal import Decimal

from db.enums import AppraisalResolution, AppraisalStatus
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class AppraisalOrderRequest(RequestModel):
    appraisal_cost: Decimal = Field(default=Decimal("500"), ge=0)
    appraiser_name: str | None = Field(default=None, max_length=200)


class AppraisalScheduleRequest(RequestModel):
    scheduled_date: date
    appraiser_name: str | None = Field(default=None, max_length=200)


class AppraisalCompleteRequest(RequestModel):
    appraised_value: Decimal = Field(gt=0)
    report_reference: str | None = Field(default=None, max_length=100)
    appraiser_notes: str | None = Field(default=None, max_length=5000)


class AppraisalResolveRequest(RequestModel):
    resolution: AppraisalResolution
    new_purchase_price: Decimal | None = Field(default=None, gt=0)
    notes: str | None = Field(default=None, max_length=2000)


class AppraisalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    status: AppraisalStatus
    purchase_price: Decimal
    appraisal_cost: Decimal
    appraiser_name: str | None = None
    scheduled_date: date | None = None
    appraised_value: Decimal | None = None
    appraisal_gap: Decimal | None = None
    report_reference: str | None = None
    appraiser_notes: str | None = None
    resolution: AppraisalResolution | None = None
    new_purchase_price: Decimal | None = None
    ordered_at: datetime
    completed_at: datetime | None = None
    resolved_at: datetime | None = None
