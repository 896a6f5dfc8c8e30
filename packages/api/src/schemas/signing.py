# This project was developed with assistance from AI tools.
"""Closing-table signing schemas."""

from datetime import datetime

from db.enums import FundMethod, SignerRole
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class SigningDocumentCreate(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    signer_role: SignerRole
    document_order: int | None = Field(default=None, ge=0)


class PrepareSigningRequest(RequestModel):
    """Documents to add; an empty list creates the standard closing package."""

    documents: list[SigningDocumentCreate] = []


class ConfirmFundsRequest(RequestModel):
    method: FundMethod
    check_number: str | None = Field(default=None, max_length=50)


class SigningDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    name: str
    signer_role: SignerRole
    document_order: int
    signed: bool
    signed_at: datetime | None = None
    signed_by: str | None = None


class SigningDocumentListResponse(BaseModel):
    data: list[SigningDocumentResponse]
    all_signed: bool
    funds_confirmed: bool
