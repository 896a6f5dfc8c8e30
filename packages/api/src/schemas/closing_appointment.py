# This project was developed with assistance from AI tools.
"""Closing appointment schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class AppointmentRequest(RequestModel):
    scheduled_at: datetime
    location: str = Field(min_length=1, max_length=255)
    notes: str | None = Field(default=None, max_length=2000)


class AppointmentConfirmation(RequestModel):
    photo_id_ready: bool = False
    certified_funds_ready: bool = False
    proof_of_insurance_ready: bool = False


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    scheduled_at: datetime
    location: str
    notes: str | None = None
    buyer_confirmed: bool
    photo_id_ready: bool
    certified_funds_ready: bool
    proof_of_insurance_ready: bool
    confirmed_at: datetime | None = None
