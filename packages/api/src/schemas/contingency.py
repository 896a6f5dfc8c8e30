# This project was developed with assistance from AI tools.
"""Contract contingency schemas."""

from datetime import date, datetime

from db.enums import ContingencyStatus, ContingencyType
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class ContingencyUpdate(RequestModel):
    status: ContingencyStatus | None = None
    deadline: date | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ContingencyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    contingency_type: ContingencyType
    status: ContingencyStatus
    deadline: date | None = None
    notes: str | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
