# This project was developed with assistance from AI tools.
"""Task ledger: per-transaction completion state of each workflow step.

Writes are atomic upserts keyed on (task_id, transaction_id), so concurrent
mutators touching the same step never produce a duplicate row. A missing
row reads as ``pending`` everywhere.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

from db import Task, TaskStatus, TaskValue, Transaction, TransactionPhase, dialect_insert
from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)


class CompletionSummary(NamedTuple):
    completed: int
    total: int
    percentage: int


def completion_percentage(completed: int, total: int) -> int:
    """round(completed / total * 100), half-up; 0 when there is nothing to do."""
    if total <= 0:
        return 0
    pct = Decimal(completed) * 100 / Decimal(total)
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def get_task_by_code(session: AsyncSession, code: str) -> Task:
    result = await session.execute(select(Task).where(Task.code == code))
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFoundError(f"Workflow task '{code}' is not in the catalog")
    return task


async def upsert_task(
    session: AsyncSession,
    transaction_id: int,
    task_id: int,
    status: TaskStatus,
    *,
    updated_by: str | None = None,
    notes: str | None = None,
) -> None:
    """Create or update the TaskValue for (task_id, transaction_id)."""
    stmt = dialect_insert(session, TaskValue).values(
        task_id=task_id,
        transaction_id=transaction_id,
        status=status,
        updated_by=updated_by,
        notes=notes,
    )
    update_cols = {
        "status": stmt.excluded.status,
        "updated_by": stmt.excluded.updated_by,
        "updated_at": func.now(),
    }
    if notes is not None:
        update_cols["notes"] = stmt.excluded.notes
    stmt = stmt.on_conflict_do_update(
        index_elements=["task_id", "transaction_id"],
        set_=update_cols,
    )
    await session.execute(stmt)


async def upsert_task_by_code(
    session: AsyncSession,
    transaction_id: int,
    code: str,
    status: TaskStatus = TaskStatus.COMPLETED,
    *,
    updated_by: str | None = None,
    notes: str | None = None,
) -> None:
    task = await get_task_by_code(session, code)
    await upsert_task(
        session, transaction_id, task.id, status, updated_by=updated_by, notes=notes,
    )
    logger.debug("Task %s -> %s on transaction %s", code, status.value, transaction_id)


def ensure_reopenable(txn: Transaction, task: Task) -> None:
    """Refuse to reopen a gating step of a phase the transaction has already left.

    Re-opening such a step would leave the deal in a phase whose entry
    conditions no longer hold; the agent must revert the phase instead.
    """
    if task.gating and task.phase.position < txn.phase.position:
        raise InvalidStateError(
            f"'{task.code}' gates the {task.phase.value} phase, which this transaction "
            f"has already passed; revert the transaction to {task.phase.value} first",
            current_state=txn.phase.value,
        )


async def reopen_task(
    session: AsyncSession,
    txn: Transaction,
    code: str,
    *,
    updated_by: str | None = None,
    status: TaskStatus = TaskStatus.PENDING,
) -> None:
    """Move a step back out of ``completed``, guarded by :func:`ensure_reopenable`."""
    task = await get_task_by_code(session, code)
    ensure_reopenable(txn, task)
    await upsert_task(session, txn.id, task.id, status, updated_by=updated_by)
    logger.debug("Task %s reopened on transaction %s", code, txn.id)


async def is_task_completed(session: AsyncSession, transaction_id: int, code: str) -> bool:
    task = await get_task_by_code(session, code)
    return await is_step_complete(session, transaction_id, task.id)


async def seed_transaction_tasks(session: AsyncSession, transaction_id: int) -> int:
    """Insert a pending TaskValue for every template not yet tracked."""
    task_ids = (await session.execute(select(Task.id))).scalars().all()
    if not task_ids:
        logger.warning("Task catalog is empty; transaction %s has no ledger", transaction_id)
        return 0
    stmt = dialect_insert(session, TaskValue).values(
        [
            {"task_id": tid, "transaction_id": transaction_id, "status": TaskStatus.PENDING}
            for tid in task_ids
        ]
    )
    await session.execute(
        stmt.on_conflict_do_nothing(index_elements=["task_id", "transaction_id"])
    )
    return len(task_ids)


async def is_step_complete(session: AsyncSession, transaction_id: int, task_id: int) -> bool:
    """True iff a TaskValue exists for the pair with status ``completed``."""
    status = await session.scalar(
        select(TaskValue.status).where(
            TaskValue.transaction_id == transaction_id,
            TaskValue.task_id == task_id,
        )
    )
    return status == TaskStatus.COMPLETED


async def completion_summary(session: AsyncSession, transaction_id: int) -> CompletionSummary:
    """Completed / total TaskValues for a transaction."""
    stmt = select(
        func.count(TaskValue.id),
        func.coalesce(
            func.sum(case((TaskValue.status == TaskStatus.COMPLETED, 1), else_=0)), 0,
        ),
    ).where(TaskValue.transaction_id == transaction_id)
    total, completed = (await session.execute(stmt)).one()
    total, completed = int(total or 0), int(completed or 0)
    return CompletionSummary(completed, total, completion_percentage(completed, total))


async def _task_rows(session: AsyncSession, transaction_id: int, *, gating_only: bool = False):
    stmt = (
        select(
            Task.id,
            Task.code,
            Task.name,
            Task.phase,
            Task.position,
            Task.gating,
            Task.manual,
            TaskValue.status,
            TaskValue.notes,
            TaskValue.updated_by,
            TaskValue.updated_at,
        )
        .outerjoin(
            TaskValue,
            and_(TaskValue.task_id == Task.id, TaskValue.transaction_id == transaction_id),
        )
        .order_by(Task.position)
    )
    if gating_only:
        stmt = stmt.where(Task.gating.is_(True))
    return (await session.execute(stmt)).all()


async def incomplete_gating_tasks(
    session: AsyncSession,
    transaction_id: int,
    before_phase: TransactionPhase,
) -> list[str]:
    """Codes of gating tasks in phases earlier than ``before_phase`` not yet completed."""
    rows = await _task_rows(session, transaction_id, gating_only=True)
    return [
        row.code
        for row in rows
        if row.phase.position < before_phase.position and row.status != TaskStatus.COMPLETED
    ]


def derive_step_status(statuses: list[TaskStatus | None]) -> TaskStatus:
    """Aggregate status of a phase from its tasks' statuses."""
    if statuses and all(s == TaskStatus.COMPLETED for s in statuses):
        return TaskStatus.COMPLETED
    if any(s in (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED) for s in statuses):
        return TaskStatus.IN_PROGRESS
    return TaskStatus.PENDING


async def get_task_board(session: AsyncSession, transaction_id: int) -> list[dict]:
    """Tasks grouped by phase, each phase carrying a derived status."""
    rows = await _task_rows(session, transaction_id)
    board: dict[TransactionPhase, list[dict]] = {}
    for row in rows:
        board.setdefault(row.phase, []).append(
            {
                "task_id": row.id,
                "code": row.code,
                "name": row.name,
                "position": row.position,
                "gating": row.gating,
                "manual": row.manual,
                "status": row.status or TaskStatus.PENDING,
                "notes": row.notes,
                "updated_by": row.updated_by,
                "updated_at": row.updated_at,
            }
        )
    return [
        {
            "phase": phase,
            "status": derive_step_status([t["status"] for t in tasks]),
            "tasks": tasks,
        }
        for phase, tasks in sorted(board.items(), key=lambda item: item[0].position)
    ]


async def reset_phase_tasks(
    session: AsyncSession,
    transaction_id: int,
    phase: TransactionPhase,
    *,
    updated_by: str | None = None,
) -> list[str]:
    """Set every completed gating step of ``phase`` back to pending; returns their codes."""
    rows = await _task_rows(session, transaction_id, gating_only=True)
    reset = [row for row in rows if row.phase == phase and row.status == TaskStatus.COMPLETED]
    for row in reset:
        await upsert_task(
            session, transaction_id, row.id, TaskStatus.PENDING, updated_by=updated_by,
        )
    return [row.code for row in reset]
