# This project was developed with assistance from AI tools.
"""Underwriting condition tracking and the clear-to-close gate.

The status row is locked (``FOR UPDATE``) for every counter change so two
concurrent submissions cannot lose an update. A new condition always
reopens the file; the gate runs on the clear-to-close check and moves the
file at most one step per call:

    conditions_requested -> clear_to_close -> approved
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from db import (
    PartyRole,
    TransactionPhase,
    UnderwritingCondition,
    UnderwritingConditionStatus,
    UnderwritingDocument,
    UnderwritingState,
    UnderwritingStatus,
    UserRole,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.underwriting import (
    ConditionCreate,
    OpenUnderwritingRequest,
    SubmitDocumentsRequest,
)
from .audit import write_activity
from .notifications import NotificationEvent, publish
from .participants import ensure_participant
from .phase_gate import announce_gate, settle_transaction
from .state_machine import require_transition
from .task_ledger import is_task_completed, reopen_task, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

LENDER_PARTIES = (PartyRole.LENDER,)
SUBMITTER_PARTIES = (PartyRole.BUYER, PartyRole.AGENT, PartyRole.LENDER)

# Ledger tasks the gate completes, keyed by the state that completes them.
_GATE_TASKS = {
    UnderwritingState.CLEAR_TO_CLOSE: "underwriting_clear_to_close",
    UnderwritingState.APPROVED: "loan_approved",
}
_REACHED_STATES = {
    UnderwritingState.CLEAR_TO_CLOSE: (UnderwritingState.CLEAR_TO_CLOSE,),
    UnderwritingState.APPROVED: (UnderwritingState.CLEAR_TO_CLOSE, UnderwritingState.APPROVED),
}


@dataclass(frozen=True)
class UnderwritingGateResult:
    transitioned: bool
    previous_status: UnderwritingState
    status: UnderwritingState
    pending_documents: int
    pending_conditions: int


async def _load_status(
    session: AsyncSession,
    transaction_id: int,
    *,
    for_update: bool = False,
) -> UnderwritingStatus:
    stmt = select(UnderwritingStatus).where(UnderwritingStatus.transaction_id == transaction_id)
    if for_update:
        stmt = stmt.with_for_update()
    uw = (await session.execute(stmt)).scalar_one_or_none()
    if uw is None:
        raise NotFoundError(f"No underwriting file for transaction {transaction_id}")
    return uw


async def _pending_conditions(
    session: AsyncSession, transaction_id: int,
) -> list[UnderwritingCondition]:
    result = await session.execute(
        select(UnderwritingCondition)
        .where(
            UnderwritingCondition.transaction_id == transaction_id,
            UnderwritingCondition.status == UnderwritingConditionStatus.PENDING,
        )
        .order_by(UnderwritingCondition.created_at, UnderwritingCondition.id)
    )
    return list(result.scalars().all())


async def count_pending_conditions(session: AsyncSession, transaction_id: int) -> int:
    return (
        await session.scalar(
            select(func.count(UnderwritingCondition.id)).where(
                UnderwritingCondition.transaction_id == transaction_id,
                UnderwritingCondition.status == UnderwritingConditionStatus.PENDING,
            )
        )
    ) or 0


# ---------------------------------------------------------------------------
# Mutators
# ---------------------------------------------------------------------------


async def open_underwriting(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: OpenUnderwritingRequest,
) -> UnderwritingStatus:
    """Create the underwriting file for a transaction's mortgage.

    When a phase revert reopened the application step, the existing file is
    resubmitted (its state kept) and the step completed again.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=SUBMITTER_PARTIES, for_update=True,
    )
    existing = (
        await session.execute(
            select(UnderwritingStatus).where(UnderwritingStatus.transaction_id == txn.id)
        )
    ).scalar_one_or_none()
    if existing is not None and await is_task_completed(
        session, txn.id, "mortgage_application_submitted",
    ):
        raise ConflictError(f"Transaction {txn.reference_code} already has an underwriting file")

    lender_id = request.lender_id or txn.lender_id
    if lender_id is None and user.role == UserRole.LENDER:
        lender_id = user.user_id
    if txn.lender_id is None and lender_id is not None:
        txn.lender_id = lender_id

    if existing is None:
        uw = UnderwritingStatus(
            transaction_id=txn.id,
            status=UnderwritingState.SUBMITTED,
            pending_documents=0,
            lender_id=lender_id,
            loan_amount=request.loan_amount,
        )
        session.add(uw)
        action = "underwriting_opened"
    else:
        uw = existing
        if request.loan_amount is not None:
            uw.loan_amount = request.loan_amount
        action = "underwriting_resubmitted"
    await upsert_task_by_code(
        session, txn.id, "mortgage_application_submitted", updated_by=user.user_id,
    )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action=action,
        details={"lender_id": lender_id},
    )
    await ensure_participant(session, user)
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(uw)
    await session.refresh(txn)
    logger.info("Transaction %s: %s", txn.reference_code, action)
    announce_gate(txn, gate)
    return uw


async def add_condition(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    detail: ConditionCreate,
) -> UnderwritingCondition:
    """Issue a pending condition; reopens the file whatever its state."""
    txn = await require_transaction(
        session, user, transaction_id, parties=LENDER_PARTIES, for_update=True,
    )
    if txn.phase.position > TransactionPhase.FINANCING.position:
        raise InvalidStateError(
            f"Transaction {txn.reference_code} has left financing ({txn.phase.value}); "
            "revert the phase before adding underwriting conditions",
            current_state=txn.phase.value,
        )
    uw = await _load_status(session, txn.id, for_update=True)

    condition = UnderwritingCondition(
        transaction_id=txn.id,
        title=detail.title,
        description=detail.description,
        document_type=detail.document_type,
        status=UnderwritingConditionStatus.PENDING,
        issued_by=user.user_id,
    )
    session.add(condition)

    previous = uw.status
    require_transition(previous, UnderwritingState.CONDITIONS_REQUESTED, entity="underwriting")
    uw.status = UnderwritingState.CONDITIONS_REQUESTED
    uw.pending_documents = uw.pending_documents + 1
    uw.clear_to_close_date = None
    uw.loan_approval_date = None
    for code in _GATE_TASKS.values():
        await reopen_task(session, txn, code, updated_by=user.user_id)

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="underwriting_condition_added",
        details={"title": detail.title, "previous_status": previous.value},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(condition)
    await session.refresh(txn)
    logger.info(
        "Condition %s added to transaction %s (underwriting %s -> conditions_requested)",
        condition.id, txn.reference_code, previous.value,
    )

    announce_gate(txn, gate)
    publish(
        NotificationEvent(
            event_type="underwriting_condition_added",
            transaction_id=txn.id,
            recipient_ids=tuple(uid for uid in (txn.buyer_id, txn.agent_id) if uid),
            context={"title": detail.title, "description": detail.description or ""},
        )
    )
    return condition


async def submit_documents(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: SubmitDocumentsRequest,
) -> tuple[UnderwritingStatus, list[UnderwritingDocument], list[int]]:
    """Record documents and satisfy one pending condition per document.

    A document satisfies the condition it names, else the first pending
    condition asking for its document type, else the oldest pending one.
    The pending-document counter is clamped at zero.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=SUBMITTER_PARTIES, for_update=True,
    )
    uw = await _load_status(session, txn.id, for_update=True)
    pending = await _pending_conditions(session, txn.id)
    by_id = {c.id: c for c in pending}

    unclaimed = list(pending)
    plan: list[tuple] = []
    for doc in request.documents:
        condition = None
        if doc.condition_id is not None:
            if doc.condition_id not in by_id:
                raise ValidationError(
                    f"Condition {doc.condition_id} is not a pending condition on this transaction"
                )
            if by_id[doc.condition_id] in unclaimed:
                condition = by_id[doc.condition_id]
        else:
            wanted = doc.document_type.lower()
            condition = next(
                (c for c in unclaimed if (c.document_type or "").lower() == wanted),
                unclaimed[0] if unclaimed else None,
            )
        if condition is not None:
            unclaimed.remove(condition)
        plan.append((doc, condition))

    now = datetime.now(UTC)
    documents = []
    satisfied = []
    for doc, condition in plan:
        record = UnderwritingDocument(
            transaction_id=txn.id,
            condition_id=condition.id if condition is not None else None,
            document_type=doc.document_type,
            document_name=doc.document_name,
            storage_key=doc.storage_key,
            uploaded_by=user.user_id,
        )
        session.add(record)
        documents.append(record)
        if condition is not None:
            condition.status = UnderwritingConditionStatus.SATISFIED
            condition.satisfied_at = now
            satisfied.append(condition.id)

    uw.pending_documents = max(0, uw.pending_documents - len(plan))
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="underwriting_documents_submitted",
        details={"count": len(plan), "satisfied_conditions": satisfied},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(uw)
    for record in documents:
        await session.refresh(record)
    await session.refresh(txn)
    logger.info(
        "%d documents submitted on transaction %s (pending now %d)",
        len(plan), txn.reference_code, uw.pending_documents,
    )
    announce_gate(txn, gate)
    return uw, documents, satisfied


async def waive_condition(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    condition_id: int,
    reason: str | None = None,
) -> UnderwritingCondition:
    """Lender waives a pending condition; it no longer needs a document."""
    txn = await require_transaction(
        session, user, transaction_id, parties=LENDER_PARTIES, for_update=True,
    )
    uw = await _load_status(session, txn.id, for_update=True)
    condition = await session.get(UnderwritingCondition, condition_id)
    if condition is None or condition.transaction_id != txn.id:
        raise NotFoundError(f"Condition {condition_id} not found on this transaction")
    if condition.status != UnderwritingConditionStatus.PENDING:
        raise InvalidStateError(
            f"Condition {condition_id} is already {condition.status.value}",
            current_state=condition.status.value,
        )

    condition.status = UnderwritingConditionStatus.WAIVED
    uw.pending_documents = max(0, uw.pending_documents - 1)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="underwriting_condition_waived",
        details={"condition_id": condition_id, "reason": reason},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(condition)
    await session.refresh(txn)
    announce_gate(txn, gate)
    return condition


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


async def _restore_gate_tasks(
    session: AsyncSession,
    transaction_id: int,
    status: UnderwritingState,
    *,
    actor_id: str | None,
) -> list[str]:
    restored = []
    for state in _REACHED_STATES.get(status, ()):
        code = _GATE_TASKS[state]
        if not await is_task_completed(session, transaction_id, code):
            await upsert_task_by_code(session, transaction_id, code, updated_by=actor_id)
            restored.append(code)
    return restored


async def evaluate_underwriting_gate(
    session: AsyncSession,
    transaction_id: int,
    *,
    actor_id: str | None = None,
) -> UnderwritingGateResult:
    """Advance the underwriting file one step if nothing is outstanding (no commit).

    A call that makes no transition never re-stamps a date; it only restores
    ledger steps of states already reached that a phase revert reset.
    """
    uw = await _load_status(session, transaction_id, for_update=True)
    pending_conditions = await count_pending_conditions(session, transaction_id)
    previous = uw.status

    target = None
    if uw.pending_documents == 0 and pending_conditions == 0:
        if previous == UnderwritingState.CONDITIONS_REQUESTED:
            target = UnderwritingState.CLEAR_TO_CLOSE
        elif previous == UnderwritingState.CLEAR_TO_CLOSE:
            target = UnderwritingState.APPROVED

    if target is None:
        if uw.pending_documents == 0 and pending_conditions == 0:
            await _restore_gate_tasks(session, transaction_id, previous, actor_id=actor_id)
        return UnderwritingGateResult(
            False, previous, previous, uw.pending_documents, pending_conditions,
        )

    require_transition(previous, target, entity="underwriting")
    now = datetime.now(UTC)
    uw.status = target
    if target == UnderwritingState.CLEAR_TO_CLOSE:
        uw.clear_to_close_date = now
    else:
        uw.loan_approval_date = now
    await _restore_gate_tasks(session, transaction_id, target, actor_id=actor_id)
    write_activity(
        session,
        transaction_id=transaction_id,
        actor_id=actor_id,
        action="underwriting_status_changed",
        details={"from": previous.value, "to": target.value},
    )
    logger.info(
        "Underwriting for transaction %s advanced %s -> %s",
        transaction_id, previous.value, target.value,
    )
    return UnderwritingGateResult(True, previous, target, 0, 0)


async def check_clear_to_close(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
) -> dict:
    """Run the underwriting gate, then the transaction phase gate, and report."""
    txn = await require_transaction(
        session, user, transaction_id, parties=SUBMITTER_PARTIES, for_update=True,
    )
    uw_gate = await evaluate_underwriting_gate(session, txn.id, actor_id=user.user_id)
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()

    uw = await _load_status(session, txn.id)
    await session.refresh(uw)
    await session.refresh(txn)
    announce_gate(txn, gate)
    if uw_gate.transitioned:
        publish(
            NotificationEvent(
                event_type="underwriting_status_changed",
                transaction_id=txn.id,
                recipient_ids=tuple(uid for uid in (txn.buyer_id, txn.agent_id) if uid),
                context={"reference_code": txn.reference_code, "status": uw.status.value},
            )
        )

    return {
        "status": uw.status,
        "transitioned": uw_gate.transitioned,
        "clear_to_close": (
            uw.status in (UnderwritingState.CLEAR_TO_CLOSE, UnderwritingState.APPROVED)
        ),
        "loan_approved": uw.status == UnderwritingState.APPROVED,
        "clear_to_close_date": uw.clear_to_close_date,
        "loan_approval_date": uw.loan_approval_date,
        "pending_documents": uw_gate.pending_documents,
        "pending_conditions": uw_gate.pending_conditions,
    }


async def get_underwriting(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
) -> tuple[UnderwritingStatus, list[UnderwritingCondition], list[UnderwritingDocument]]:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    uw = await _load_status(session, txn.id)
    conditions = (
        await session.execute(
            select(UnderwritingCondition)
            .where(UnderwritingCondition.transaction_id == txn.id)
            .order_by(UnderwritingCondition.id)
        )
    ).scalars().all()
    documents = (
        await session.execute(
            select(UnderwritingDocument)
            .where(UnderwritingDocument.transaction_id == txn.id)
            .order_by(UnderwritingDocument.id)
        )
    ).scalars().all()
    return uw, list(conditions), list(documents)
