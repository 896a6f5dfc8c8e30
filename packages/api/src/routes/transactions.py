# This project was developed with assistance from AI tools.
"""Transaction record, task ledger and phase gate routes."""

from db import get_db
from db.enums import TransactionStatus, UserRole
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.transaction import (
    ActivityItem,
    ActivityListResponse,
    CancelTransactionRequest,
    GateResponse,
    ProgressResponse,
    RevertPhaseRequest,
    TaskBoardResponse,
    TaskStatusUpdate,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdate,
)
from ..services import phase_gate
from ..services import transaction as txn_service
from ..services.audit import get_activity
from ..services.task_ledger import completion_summary, get_task_board

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)


def _gate_response(txn, gate) -> GateResponse:
    return GateResponse(
        advanced=gate.advanced,
        previous_phase=gate.previous_phase,
        phase=gate.phase,
        blockers=gate.blockers,
        transaction=TransactionResponse.model_validate(txn),
    )


@router.get(
    "",
    response_model=TransactionListResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def list_transactions(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    status_filter: TransactionStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> TransactionListResponse:
    """Transactions where the caller is a party (all of them for admins)."""
    txns, total = await txn_service.list_transactions(
        session, user, offset=offset, limit=limit, status=status_filter,
    )
    return TransactionListResponse(
        data=[TransactionResponse.model_validate(t) for t in txns],
        pagination=Pagination(
            total=total, offset=offset, limit=limit, has_more=(offset + limit) < total,
        ),
    )


@router.get(
    "/{transaction_id}",
    response_model=TransactionResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_transaction(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransactionResponse:
    txn = await txn_service.require_transaction(session, user, transaction_id, mutable=False)
    return TransactionResponse.model_validate(txn)


@router.patch(
    "/{transaction_id}",
    response_model=TransactionResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def update_transaction(
    transaction_id: int,
    body: TransactionUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransactionResponse:
    """Partial update; omitted fields keep their value and phase never moves back."""
    txn = await txn_service.update_status(session, user, transaction_id, body)
    return TransactionResponse.model_validate(txn)


@router.get(
    "/{transaction_id}/tasks",
    response_model=TaskBoardResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_tasks(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TaskBoardResponse:
    """Task board grouped by phase."""
    txn = await txn_service.require_transaction(session, user, transaction_id, mutable=False)
    board = await get_task_board(session, txn.id)
    return TaskBoardResponse(transaction_id=txn.id, current_phase=txn.phase, phases=board)


@router.put(
    "/{transaction_id}/tasks/{task_id}",
    response_model=GateResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def update_task(
    transaction_id: int,
    task_id: int,
    body: TaskStatusUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> GateResponse:
    """Set a task's status; the phase gate runs afterwards."""
    txn, gate = await phase_gate.set_task_status(
        session, user, transaction_id, task_id, body.status, notes=body.notes,
    )
    return _gate_response(txn, gate)


@router.get(
    "/{transaction_id}/progress",
    response_model=ProgressResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_progress(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ProgressResponse:
    """Ledger completion and what blocks the next phase."""
    txn, blockers = await phase_gate.get_progress(session, user, transaction_id)
    summary = await completion_summary(session, txn.id)
    return ProgressResponse(
        transaction_id=txn.id,
        completed=summary.completed,
        total=summary.total,
        percentage=summary.percentage,
        phase=txn.phase,
        blockers=blockers,
    )


@router.post(
    "/{transaction_id}/advance",
    response_model=GateResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def advance_transaction(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> GateResponse:
    """Evaluate the phase gate once; advances at most one phase."""
    txn, gate = await phase_gate.advance_transaction(session, user, transaction_id)
    return _gate_response(txn, gate)


@router.post(
    "/{transaction_id}/revert-phase",
    response_model=TransactionResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.AGENT))],
)
async def revert_phase(
    transaction_id: int,
    body: RevertPhaseRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransactionResponse:
    txn = await txn_service.revert_phase(session, user, transaction_id, body.phase, body.reason)
    return TransactionResponse.model_validate(txn)


@router.post(
    "/{transaction_id}/cancel",
    response_model=TransactionResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def cancel_transaction(
    transaction_id: int,
    body: CancelTransactionRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransactionResponse:
    """Cancel the deal, terminate the accepted offer and relist the property."""
    txn = await txn_service.cancel_transaction(session, user, transaction_id, body.reason)
    return TransactionResponse.model_validate(txn)


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def delete_transaction(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> Response:
    """Purge a cancelled transaction and all of its records."""
    await txn_service.purge_transaction(session, user, transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{transaction_id}/activity",
    response_model=ActivityListResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def list_activity(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    limit: int = Query(default=100, ge=1, le=500),
) -> ActivityListResponse:
    txn = await txn_service.require_transaction(session, user, transaction_id, mutable=False)
    entries = await get_activity(session, txn.id, limit=limit)
    return ActivityListResponse(data=[ActivityItem.model_validate(e) for e in entries])
