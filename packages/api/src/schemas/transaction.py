# This project was developed with assistance from AI tools.
"""Transaction, task ledger and phase gate schemas."""

from datetime import date, datetime
from decimal import Decimal

from db.enums import TaskStatus, TransactionPhase, TransactionStatus
from pydantic import BaseModel, ConfigDict, Field

from . import Pagination, RequestModel


class TransactionResponse(BaseModel):
    """Single transaction response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    reference_code: str
    property_id: int
    offer_id: int
    buyer_id: str
    seller_id: str
    agent_id: str | None = None
    lender_id: str | None = None
    title_officer_id: str | None = None
    purchase_price: Decimal
    earnest_money: Decimal | None = None
    commission: Decimal | None = None
    status: TransactionStatus
    phase: TransactionPhase
    progress: int
    closing_date: date | None = None
    phase_changed_at: datetime | None = None
    funds_confirmed: bool = False
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class TransactionListResponse(BaseModel):
    """Paginated list of transactions."""

    data: list[TransactionResponse]
    pagination: Pagination


class TransactionUpdate(RequestModel):
    """Partial update; omitted or null fields keep their current value."""

    status: TransactionStatus | None = None
    phase: TransactionPhase | None = None
    progress: int | None = Field(default=None, ge=0, le=100)
    closing_date: date | None = None
    commission: Decimal | None = Field(default=None, ge=0)
    agent_id: str | None = None
    lender_id: str | None = None
    title_officer_id: str | None = None


class RevertPhaseRequest(RequestModel):
    phase: TransactionPhase
    reason: str = Field(min_length=1, max_length=2000)


class CancelTransactionRequest(RequestModel):
    reason: str = Field(min_length=1, max_length=2000)


class TaskStatusUpdate(RequestModel):
    """Set a ledger task's status by hand."""

    status: TaskStatus
    notes: str | None = Field(default=None, max_length=2000)


class TaskItem(BaseModel):
    task_id: int
    code: str
    name: str
    position: int
    gating: bool
    manual: bool = False
    status: TaskStatus
    notes: str | None = None
    updated_by: str | None = None
    updated_at: datetime | None = None


class PhaseTasks(BaseModel):
    phase: TransactionPhase
    status: TaskStatus
    tasks: list[TaskItem]


class TaskBoardResponse(BaseModel):
    """Response for GET /transactions/{id}/tasks."""

    transaction_id: int
    current_phase: TransactionPhase
    phases: list[PhaseTasks]


class ProgressResponse(BaseModel):
    transaction_id: int
    completed: int
    total: int
    percentage: int
    phase: TransactionPhase
    blockers: list[str] = []


class GateResponse(BaseModel):
    """Outcome of one phase gate evaluation."""

    advanced: bool
    previous_phase: TransactionPhase
    phase: TransactionPhase
    blockers: list[str] = []
    transaction: TransactionResponse


class ActivityItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor_id: str | None = None
    action: str
    details: dict | None = None
    created_at: datetime


class ActivityListResponse(BaseModel):
    data: list[ActivityItem]
