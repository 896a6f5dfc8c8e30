# This project was developed with assistance from AI tools.
"""Underwriting file, condition and document schemas."""

from datetime import datetime
from decimal import Decimal

from db.enums import UnderwritingConditionStatus, UnderwritingState
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class OpenUnderwritingRequest(RequestModel):
    lender_id: str | None = None
    loan_amount: Decimal | None = Field(default=None, gt=0)


class ConditionCreate(RequestModel):
    """Condition issued by the underwriter."""

    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    document_type: str | None = Field(default=None, max_length=100)


class UnderwritingDocumentItem(RequestModel):
    document_type: str = Field(min_length=1, max_length=100)
    document_name: str = Field(min_length=1, max_length=255)
    storage_key: str | None = Field(default=None, max_length=500)
    condition_id: int | None = None


class SubmitDocumentsRequest(RequestModel):
    documents: list[UnderwritingDocumentItem] = Field(min_length=1)


class WaiveConditionRequest(RequestModel):
    reason: str | None = Field(default=None, max_length=2000)


class UnderwritingStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    status: UnderwritingState
    pending_documents: int
    lender_id: str | None = None
    loan_amount: Decimal | None = None
    clear_to_close_date: datetime | None = None
    loan_approval_date: datetime | None = None
    submitted_at: datetime
    updated_at: datetime


class ConditionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    title: str
    description: str | None = None
    document_type: str | None = None
    status: UnderwritingConditionStatus
    issued_by: str | None = None
    satisfied_at: datetime | None = None
    created_at: datetime


class UnderwritingDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    condition_id: int | None = None
    document_type: str
    document_name: str
    storage_key: str | None = None
    uploaded_by: str | None = None
    uploaded_at: datetime


class UnderwritingResponse(BaseModel):
    """Aggregate view of a transaction's underwriting file."""

    status: UnderwritingStatusResponse
    conditions: list[ConditionResponse] = []
    documents: list[UnderwritingDocumentResponse] = []


class SubmitDocumentsResponse(BaseModel):
    status: UnderwritingStatusResponse
    documents: list[UnderwritingDocumentResponse]
    satisfied_condition_ids: list[int] = []


class ClearToCloseResponse(BaseModel):
    """Result of a clear-to-close check."""

    status: UnderwritingState
    transitioned: bool
    clear_to_close: bool
    loan_approved: bool
    clear_to_close_date: datetime | None = None
    loan_approval_date: datetime | None = None
    pending_documents: int
    pending_conditions: int
