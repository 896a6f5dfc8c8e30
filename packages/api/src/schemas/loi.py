# This project was developed with assistance from AI tools.
"""Letter-of-intent document schemas."""

from datetime import datetime

from db.enums import LetterStatus, LetterType
from pydantic import BaseModel, ConfigDict, Field

from . import Pagination, RequestModel


class LetterCreate(RequestModel):
    """Generate a letter from an existing offer."""

    offer_id: int
    document_type: LetterType = LetterType.LOI
    additional_provisions: str | None = Field(default=None, max_length=5000)
    special_conditions: list[str] = Field(default_factory=list, max_length=20)


class LetterStatusUpdate(RequestModel):
    status: LetterStatus
    notes: str | None = Field(default=None, max_length=2000)


class LetterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    document_id: str
    document_type: LetterType
    status: LetterStatus
    offer_id: int | None = None
    transaction_id: int | None = None
    created_by: str
    parties: dict
    financial_terms: dict
    terms: dict
    signatures: dict
    tracking: dict
    envelope_id: str | None = None
    created_at: datetime
    updated_at: datetime


class LetterListResponse(BaseModel):
    data: list[LetterResponse]
    pagination: Pagination


class WebhookAck(BaseModel):
    status: str = "ok"
    document_id: str | None = None
    letter_status: LetterStatus | None = None
