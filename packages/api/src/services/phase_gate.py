# This project was developed with assistance from AI tools.
"""Transaction phase gate.

Decides whether a transaction may leave its current phase. A phase is
passable when every gating task up to and including it is completed and its
exit precondition (if any) holds. Evaluation advances at most one phase per
call and writes nothing when no transition happens, so calling it again
without an intervening change is a no-op.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from db import (
    ClosingDiscrepancy,
    ClosingDisclosure,
    DiscrepancyStatus,
    Funding,
    Property,
    PropertyStatus,
    RecordingStatus,
    SigningDocument,
    Task,
    TaskStatus,
    Transaction,
    TransactionPhase,
    TransactionStatus,
    UnderwritingState,
    UnderwritingStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ForbiddenError, NotFoundError
from ..schemas.auth import UserContext
from .audit import write_activity
from .notifications import NotificationEvent, publish
from .task_ledger import ensure_reopenable, incomplete_gating_tasks, upsert_task
from .transaction import recompute_progress, require_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateResult:
    advanced: bool
    previous_phase: TransactionPhase
    phase: TransactionPhase
    blockers: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Exit preconditions, one per phase that has more than task checks
# ---------------------------------------------------------------------------


async def _financing_exit(session: AsyncSession, txn: Transaction) -> list[str]:
    uw_status = await session.scalar(
        select(UnderwritingStatus.status).where(UnderwritingStatus.transaction_id == txn.id)
    )
    if uw_status is None:
        return ["Underwriting file has not been opened"]
    if uw_status != UnderwritingState.APPROVED:
        return [f"Underwriting is '{uw_status.value}', loan not yet approved"]
    return []


async def _closing_disclosure_exit(session: AsyncSession, txn: Transaction) -> list[str]:
    blockers = []
    disclosure_id = await session.scalar(
        select(ClosingDisclosure.id).where(ClosingDisclosure.transaction_id == txn.id)
    )
    if disclosure_id is None:
        blockers.append("Closing Disclosure has not been received")
    open_count = await session.scalar(
        select(func.count(ClosingDiscrepancy.id)).where(
            ClosingDiscrepancy.transaction_id == txn.id,
            ClosingDiscrepancy.status == DiscrepancyStatus.OPEN,
        )
    )
    if open_count:
        blockers.append(f"{open_count} fee discrepancies are still open")
    return blockers


async def _signing_exit(session: AsyncSession, txn: Transaction) -> list[str]:
    blockers = []
    unsigned = await session.scalar(
        select(func.count(SigningDocument.id)).where(
            SigningDocument.transaction_id == txn.id,
            SigningDocument.signed.is_(False),
        )
    )
    if unsigned:
        blockers.append(f"{unsigned} closing documents are unsigned")
    if not txn.funds_confirmed:
        blockers.append("Closing funds have not been confirmed")
    return blockers


async def _funding_exit(session: AsyncSession, txn: Transaction) -> list[str]:
    result = await session.execute(
        select(Funding.recording_status, Funding.keys_delivered).where(
            Funding.transaction_id == txn.id
        )
    )
    row = result.one_or_none()
    if row is None:
        return ["Funding has not started"]
    blockers = []
    if row.recording_status != RecordingStatus.COMPLETED:
        blockers.append(f"Deed recording is '{row.recording_status.value}'")
    if not row.keys_delivered:
        blockers.append("Keys have not been delivered")
    return blockers


PhaseCheck = Callable[[AsyncSession, Transaction], Awaitable[list[str]]]

EXIT_PRECONDITIONS: dict[TransactionPhase, PhaseCheck] = {
    TransactionPhase.FINANCING: _financing_exit,
    TransactionPhase.CLOSING_DISCLOSURE: _closing_disclosure_exit,
    TransactionPhase.SIGNING: _signing_exit,
    TransactionPhase.FUNDING: _funding_exit,
}


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


async def phase_blockers(session: AsyncSession, txn: Transaction) -> list[str]:
    """Reasons the transaction cannot leave its current phase (empty if none)."""
    next_phase = txn.phase.next_phase()
    if next_phase is None:
        return []
    blockers = [
        f"Task '{code}' is not completed"
        for code in await incomplete_gating_tasks(session, txn.id, next_phase)
    ]
    check = EXIT_PRECONDITIONS.get(txn.phase)
    if check is not None:
        blockers.extend(await check(session, txn))
    return blockers


async def evaluate_phase_gate(
    session: AsyncSession,
    txn: Transaction,
    *,
    actor_id: str | None = None,
) -> GateResult:
    """Advance ``txn`` by at most one phase if its gate is open (no commit)."""
    current = txn.phase
    if txn.status in TransactionStatus.terminal_statuses() or current.next_phase() is None:
        return GateResult(False, current, current)
    if txn.status == TransactionStatus.ON_HOLD:
        return GateResult(False, current, current, ["Transaction is on hold"])

    blockers = await phase_blockers(session, txn)
    if blockers:
        return GateResult(False, current, current, blockers)

    next_phase = current.next_phase()
    now = datetime.now(UTC)
    txn.phase = next_phase
    txn.phase_changed_at = now
    if txn.status == TransactionStatus.PENDING:
        txn.status = TransactionStatus.IN_PROGRESS
    if next_phase == TransactionPhase.CLOSED:
        txn.status = TransactionStatus.COMPLETED
        txn.completed_at = now
        prop = await session.get(Property, txn.property_id)
        if prop is not None:
            prop.status = PropertyStatus.SOLD

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=actor_id,
        action="phase_advanced",
        details={"from": current.value, "to": next_phase.value},
    )
    logger.info(
        "Transaction %s advanced %s -> %s", txn.reference_code, current.value, next_phase.value,
    )
    return GateResult(True, current, next_phase)


async def settle_transaction(
    session: AsyncSession,
    txn: Transaction,
    *,
    actor_id: str | None = None,
) -> GateResult:
    """Recompute progress, then run the gate once. Called by every mutator before commit."""
    await recompute_progress(session, txn)
    return await evaluate_phase_gate(session, txn, actor_id=actor_id)


def announce_gate(txn: Transaction, gate: GateResult) -> None:
    """Publish a phase-change notification; call only after commit."""
    if not gate.advanced:
        return
    completed = txn.status == TransactionStatus.COMPLETED
    event_type = "transaction_completed" if completed else "phase_advanced"
    publish(
        NotificationEvent(
            event_type=event_type,
            transaction_id=txn.id,
            recipient_ids=tuple(
                uid for uid in (txn.buyer_id, txn.seller_id, txn.agent_id) if uid
            ),
            context={
                "reference_code": txn.reference_code,
                "previous_phase": gate.previous_phase.value,
                "phase": gate.phase.value,
            },
        )
    )


async def advance_transaction(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
) -> tuple[Transaction, GateResult]:
    """Explicit gate evaluation requested by a party."""
    txn = await require_transaction(session, user, transaction_id, for_update=True)
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(txn)
    announce_gate(txn, gate)
    return txn, gate


async def get_progress(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
) -> tuple[Transaction, list[str]]:
    """Read-only view of the transaction and what blocks its next phase."""
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    return txn, await phase_blockers(session, txn)


async def set_task_status(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    task_id: int,
    status: TaskStatus,
    *,
    notes: str | None = None,
) -> tuple[Transaction, GateResult]:
    """Set one manual ledger task by hand, then settle progress and the gate.

    Steps owned by a workflow operation can only change through that
    operation, so the ledger never claims work the records do not show.
    """
    txn = await require_transaction(session, user, transaction_id, for_update=True)
    task = await session.get(Task, task_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    if not task.manual:
        raise ForbiddenError(
            f"'{task.code}' is completed by its workflow operation and cannot be set by hand"
        )
    if status != TaskStatus.COMPLETED:
        ensure_reopenable(txn, task)

    await upsert_task(session, txn.id, task.id, status, updated_by=user.user_id, notes=notes)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="task_updated",
        details={"task": task.code, "status": status.value},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(txn)
    announce_gate(txn, gate)
    return txn, gate
