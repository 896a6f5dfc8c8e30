# This project was developed with assistance from AI tools.
"""Property listing schemas."""

from datetime import datetime
from decimal import Decimal

from db.enums import PropertyStatus
from pydantic import BaseModel, ConfigDict, Field

from . import Pagination, RequestModel


class PropertyCreate(RequestModel):
    """Create a listing. ``seller_id`` is only honoured for admins."""

    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=2, max_length=2)
    zip_code: str = Field(min_length=3, max_length=10)
    county: str | None = Field(default=None, max_length=100)
    list_price: Decimal = Field(gt=0)
    minimum_offer: Decimal | None = Field(default=None, gt=0)
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: Decimal | None = Field(default=None, ge=0)
    square_feet: int | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, max_length=5000)
    seller_id: str | None = None


class PropertyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    seller_id: str
    street: str
    city: str
    state: str
    zip_code: str
    county: str | None = None
    list_price: Decimal
    minimum_offer: Decimal | None = None
    bedrooms: int | None = None
    bathrooms: Decimal | None = None
    square_feet: int | None = None
    description: str | None = None
    status: PropertyStatus
    created_at: datetime
    updated_at: datetime


class PropertyListResponse(BaseModel):
    data: list[PropertyResponse]
    pagination: Pagination
