# This project was developed with assistance from AI tools.
"""Final walk-through schemas."""

from datetime import date, datetime

from db.enums import IssueSeverity, WalkThroughStatus
from pydantic import BaseModel, ConfigDict, Field

from . import RequestModel


class ScheduleWalkThroughRequest(RequestModel):
    scheduled_date: date
    scheduled_time: str | None = Field(default=None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    notes: str | None = Field(default=None, max_length=5000)


class ChecklistItemUpdate(RequestModel):
    checked: bool | None = None
    notes: str | None = Field(default=None, max_length=2000)


class IssueCreate(RequestModel):
    description: str = Field(min_length=1, max_length=5000)
    severity: IssueSeverity = IssueSeverity.MINOR


class CompleteWalkThroughRequest(RequestModel):
    notes: str | None = Field(default=None, max_length=5000)


class ChecklistItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: str
    item: str
    checked: bool
    notes: str | None = None


class IssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    severity: IssueSeverity
    resolved: bool
    created_at: datetime


class WalkThroughResponse(BaseModel):
    id: int
    transaction_id: int
    scheduled_date: date
    scheduled_time: str | None = None
    status: WalkThroughStatus
    issues_found: bool
    notes: str | None = None
    completed_at: datetime | None = None
    checklist: list[ChecklistItemResponse] = []
    issues: list[IssueResponse] = []
