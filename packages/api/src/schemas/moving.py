# This project was developed with assistance from AI tools.
"""Moving preparation schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class PossessionUpdate(RequestModel):
    possession_date: date
    possession_time: str | None = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class MoversUpdate(RequestModel):
    moving_company: str = Field(min_length=1, max_length=200)
    moving_date: date
    mover_confirmation: str | None = Field(default=None, max_length=100)


class AddressChangeUpdate(RequestModel):
    new_address: str = Field(min_length=1, max_length=500)
    address_change_effective: date | None = None
    filed: bool = True


class UtilityTransferCreate(RequestModel):
    utility_type: str = Field(min_length=1, max_length=50)
    provider: str = Field(min_length=1, max_length=200)
    account_number: str | None = Field(default=None, max_length=100)
    transfer_date: date | None = None


class UtilityTransferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    utility_type: str
    provider: str
    account_number: str | None = None
    transfer_date: date | None = None
    status: str
    created_at: datetime


class MovingResponse(BaseModel):
    transaction_id: int
    possession_date: date | None = None
    possession_time: str | None = None
    moving_company: str | None = None
    moving_date: date | None = None
    mover_confirmation: str | None = None
    new_address: str | None = None
    address_change_effective: date | None = None
    address_change_filed: bool = False
    utilities: list[UtilityTransferResponse] = []
