# This project was developed with assistance from AI tools.
"""Transaction record service.

Creation from an accepted offer, scoped lookups, the allow-listed
coalescing status update, explicit phase regression, cancellation and the
admin purge. Every mutator in the workflow loads its transaction through
``require_transaction`` so visibility, party and terminal-state checks run
before any write.
"""

import logging
import secrets
from datetime import UTC, datetime
from decimal import Decimal

from db import (
    Appraisal,
    ClosingAppointment,
    ClosingDiscrepancy,
    ClosingDisclosure,
    ClosingFee,
    Contingency,
    ContingencyType,
    Disbursement,
    EarnestMoneyDeposit,
    Funding,
    Inspection,
    InsurancePolicy,
    LetterOfIntent,
    LoanEstimate,
    LoanEstimateFee,
    MovingPreparation,
    Offer,
    OfferStatus,
    PartyRole,
    Property,
    PropertyStatus,
    RecordingLog,
    RepairItem,
    RepairRequest,
    SigningDocument,
    TaskValue,
    Transaction,
    TransactionActivity,
    TransactionPhase,
    TransactionStatus,
    UnderwritingCondition,
    UnderwritingDocument,
    UnderwritingStatus,
    UtilityTransfer,
    WalkThrough,
    WalkThroughIssue,
    WalkThroughItem,
    WireInstructions,
)
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidStateError, NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.transaction import TransactionUpdate
from .audit import write_activity
from .notifications import NotificationEvent, publish
from .scope import ALL_PARTIES, apply_transaction_scope, ensure_party
from .state_machine import require_transition
from .task_ledger import (
    completion_summary,
    incomplete_gating_tasks,
    reset_phase_tasks,
    seed_transaction_tasks,
)

logger = logging.getLogger(__name__)

# Fields a caller may change through update_status. Everything else on the
# record is owned by a specific workflow mutator.
_UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "phase",
        "progress",
        "closing_date",
        "commission",
        "agent_id",
        "lender_id",
        "title_officer_id",
    }
)

UPDATE_PARTIES = (PartyRole.BUYER, PartyRole.SELLER, PartyRole.AGENT)


def _new_reference_code(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"TXN-{now:%Y%m}-{secrets.token_hex(3).upper()}"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_transaction(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    *,
    for_update: bool = False,
) -> Transaction | None:
    """Return the transaction if it exists and the caller may see it."""
    stmt = select(Transaction).where(Transaction.id == transaction_id)
    stmt = apply_transaction_scope(stmt, user.data_scope)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def require_transaction(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    *,
    parties: tuple[PartyRole, ...] = ALL_PARTIES,
    mutable: bool = True,
    for_update: bool = False,
) -> Transaction:
    """Load a transaction for an operation or raise the matching workflow error.

    Invisible transactions are reported as not found; visible ones where the
    caller holds none of ``parties`` are forbidden; terminal ones refuse
    mutation when ``mutable`` is set.
    """
    txn = await get_transaction(session, user, transaction_id, for_update=for_update)
    if txn is None:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    ensure_party(txn, user, *parties)
    if mutable and txn.status in TransactionStatus.terminal_statuses():
        raise InvalidStateError(
            f"Transaction {txn.reference_code} is {txn.status.value}; no further changes allowed",
            current_state=txn.status.value,
        )
    return txn


async def list_transactions(
    session: AsyncSession,
    user: UserContext,
    *,
    offset: int = 0,
    limit: int = 20,
    status: TransactionStatus | None = None,
) -> tuple[list[Transaction], int]:
    """Return (transactions, total) visible to the caller, newest first."""
    count_stmt = apply_transaction_scope(select(func.count(Transaction.id)), user.data_scope)
    stmt = apply_transaction_scope(select(Transaction), user.data_scope)
    if status is not None:
        count_stmt = count_stmt.where(Transaction.status == status)
        stmt = stmt.where(Transaction.status == status)
    total = (await session.execute(count_stmt)).scalar() or 0
    stmt = (
        stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Creation and progress
# ---------------------------------------------------------------------------


async def create_from_offer(
    session: AsyncSession,
    offer: Offer,
    *,
    price: Decimal | None = None,
    actor_id: str | None = None,
) -> Transaction:
    """Open a transaction for an accepted offer (no commit).

    Starts in the initial phase, ``pending``, at 0% progress, with a pending
    ledger entry for every catalog task.
    """
    price = price if price is not None else offer.offer_amount
    required = {
        "property": offer.property_id,
        "buyer": offer.buyer_id,
        "seller": offer.seller_id,
        "price": price,
    }
    missing = [name for name, value in required.items() if value in (None, "")]
    if missing:
        raise ValidationError("Cannot open a transaction without: " + ", ".join(missing))

    txn = Transaction(
        reference_code=_new_reference_code(),
        property_id=offer.property_id,
        offer_id=offer.id,
        buyer_id=offer.buyer_id,
        seller_id=offer.seller_id,
        purchase_price=price,
        earnest_money=offer.earnest_money,
        closing_date=offer.proposed_closing_date,
        status=TransactionStatus.PENDING,
        phase=TransactionPhase.initial(),
        progress=0,
    )
    session.add(txn)
    await session.flush()

    await seed_transaction_tasks(session, txn.id)
    for contingency_type in _offer_contingencies(offer):
        session.add(Contingency(transaction_id=txn.id, contingency_type=contingency_type))
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=actor_id,
        action="transaction_created",
        details={"offer_id": offer.id, "price": str(price)},
    )
    logger.info("Transaction %s opened for offer %s", txn.reference_code, offer.id)
    return txn


def _offer_contingencies(offer: Offer) -> list[ContingencyType]:
    flags = {
        ContingencyType.INSPECTION: offer.inspection_contingency,
        ContingencyType.FINANCING: offer.financing_contingency,
        ContingencyType.APPRAISAL: offer.appraisal_contingency,
        ContingencyType.SALE_OF_HOME: offer.sale_contingency,
    }
    return [kind for kind, enabled in flags.items() if enabled]


async def recompute_progress(session: AsyncSession, transaction: Transaction) -> int:
    """Write the ledger completion percentage back onto the transaction."""
    summary = await completion_summary(session, transaction.id)
    if transaction.progress != summary.percentage:
        transaction.progress = summary.percentage
    return summary.percentage


# ---------------------------------------------------------------------------
# Status / phase updates
# ---------------------------------------------------------------------------


async def update_status(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    update: TransactionUpdate,
) -> Transaction:
    """Partially update a transaction; omitted or null fields keep their value.

    Phase may only move forward here, and only when every gating task of
    the phases being left is completed.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=UPDATE_PARTIES, for_update=True,
    )

    changes = {
        field: value
        for field, value in update.model_dump(exclude_unset=True).items()
        if field in _UPDATABLE_FIELDS and value is not None
    }
    if not changes:
        return txn

    new_status = changes.get("status")
    if new_status is not None and new_status != txn.status:
        if new_status == TransactionStatus.CANCELLED:
            raise ValidationError("Use the cancel operation to cancel a transaction")
        if new_status == TransactionStatus.COMPLETED:
            raise InvalidStateError(
                "A transaction completes when its final phase closes",
                current_state=txn.status.value,
            )
        require_transition(txn.status, new_status, entity="transaction")

    new_phase = changes.get("phase")
    if new_phase is not None and new_phase != txn.phase:
        if new_phase.position < txn.phase.position:
            raise InvalidStateError(
                f"Phase regression from '{txn.phase.value}' to '{new_phase.value}' "
                "must be requested explicitly",
                current_state=txn.phase.value,
            )
        if new_phase == TransactionPhase.CLOSED:
            raise InvalidStateError(
                "The closed phase is reached through the phase gate",
                current_state=txn.phase.value,
            )
        blockers = await incomplete_gating_tasks(session, txn.id, new_phase)
        if blockers:
            raise InvalidStateError(
                f"Cannot enter phase '{new_phase.value}' with incomplete gating tasks: "
                + ", ".join(blockers),
                current_state=txn.phase.value,
            )

    previous = {field: _plain(getattr(txn, field)) for field in changes}
    old_phase = txn.phase
    for field, value in changes.items():
        setattr(txn, field, value)
    if new_phase is not None and new_phase != old_phase:
        txn.phase_changed_at = datetime.now(UTC)
        if txn.status == TransactionStatus.PENDING and new_status is None:
            txn.status = TransactionStatus.IN_PROGRESS

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="transaction_updated",
        details={
            "changes": {field: _plain(value) for field, value in changes.items()},
            "previous": previous,
        },
    )
    await session.commit()
    await session.refresh(txn)
    return txn


async def revert_phase(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    phase: TransactionPhase,
    reason: str,
) -> Transaction:
    """Explicitly move a transaction back to an earlier phase.

    The gating steps of the target phase are reset to pending in the same
    unit of work, so the gate holds the deal there until the owning
    operations are redone. Steps of later phases keep their state.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.AGENT,), for_update=True,
    )
    if phase.position >= txn.phase.position:
        raise ValidationError(
            f"Phase '{phase.value}' is not earlier than the current phase '{txn.phase.value}'"
        )

    previous = txn.phase
    reset = await reset_phase_tasks(session, txn.id, phase, updated_by=user.user_id)
    txn.phase = phase
    txn.phase_changed_at = datetime.now(UTC)
    await recompute_progress(session, txn)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="phase_reverted",
        details={
            "from": previous.value,
            "to": phase.value,
            "reason": reason,
            "reset_tasks": reset,
        },
    )
    await session.commit()
    await session.refresh(txn)
    logger.info(
        "Transaction %s reverted %s -> %s (reset %d tasks)",
        txn.reference_code, previous.value, phase.value, len(reset),
    )
    return txn


# ---------------------------------------------------------------------------
# Cancellation / purge
# ---------------------------------------------------------------------------


async def cancel_transaction(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    reason: str,
) -> Transaction:
    """Cancel a deal: terminate the accepted offer and relist the property.

    Dependent records are kept for the history; mutators refuse to touch a
    cancelled transaction.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=UPDATE_PARTIES, for_update=True,
    )
    await apply_cancellation(session, txn, actor_id=user.user_id, reason=reason)
    await session.commit()
    await session.refresh(txn)
    logger.info("Transaction %s cancelled by %s", txn.reference_code, user.user_id)
    announce_cancellation(txn, reason)
    return txn


async def apply_cancellation(
    session: AsyncSession,
    txn: Transaction,
    *,
    actor_id: str | None,
    reason: str,
) -> None:
    """Cancel ``txn`` inside the caller's unit of work (no commit)."""
    require_transition(txn.status, TransactionStatus.CANCELLED, entity="transaction")

    offer = await session.get(Offer, txn.offer_id)
    if offer is not None and offer.status == OfferStatus.ACCEPTED:
        require_transition(offer.status, OfferStatus.TERMINATED, entity="offer")
        offer.status = OfferStatus.TERMINATED

    prop = await session.get(Property, txn.property_id)
    if prop is not None and prop.status == PropertyStatus.UNDER_CONTRACT:
        prop.status = PropertyStatus.ACTIVE

    txn.status = TransactionStatus.CANCELLED
    txn.cancelled_at = datetime.now(UTC)
    txn.cancellation_reason = reason
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=actor_id,
        action="transaction_cancelled",
        details={"reason": reason},
    )


def announce_cancellation(txn: Transaction, reason: str) -> None:
    publish(
        NotificationEvent(
            event_type="transaction_cancelled",
            transaction_id=txn.id,
            recipient_ids=tuple(
                uid for uid in (txn.buyer_id, txn.seller_id, txn.agent_id, txn.lender_id) if uid
            ),
            context={"reference_code": txn.reference_code, "reason": reason},
        )
    )


# Deleted child-first so the purge also works where foreign keys are not
# enforced (SQLite test databases).
_DEPENDENT_MODELS = (
    TaskValue,
    TransactionActivity,
    EarnestMoneyDeposit,
    RepairRequest,
    Inspection,
    Contingency,
    Appraisal,
    UnderwritingDocument,
    UnderwritingCondition,
    UnderwritingStatus,
    ClosingDiscrepancy,
    ClosingFee,
    ClosingDisclosure,
    WireInstructions,
    InsurancePolicy,
    ClosingAppointment,
    SigningDocument,
    Disbursement,
    RecordingLog,
    Funding,
    UtilityTransfer,
    MovingPreparation,
    LetterOfIntent,
)


async def purge_transaction(session: AsyncSession, user: UserContext, transaction_id: int) -> None:
    """Physically delete a cancelled transaction and everything it owns."""
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    if txn.status != TransactionStatus.CANCELLED:
        raise InvalidStateError(
            "Only cancelled transactions can be deleted",
            current_state=txn.status.value,
        )

    request_ids = select(RepairRequest.id).where(RepairRequest.transaction_id == transaction_id)
    await session.execute(delete(RepairItem).where(RepairItem.repair_request_id.in_(request_ids)))
    walk_ids = select(WalkThrough.id).where(WalkThrough.transaction_id == transaction_id)
    await session.execute(
        delete(WalkThroughItem).where(WalkThroughItem.walk_through_id.in_(walk_ids))
    )
    await session.execute(
        delete(WalkThroughIssue).where(WalkThroughIssue.walk_through_id.in_(walk_ids))
    )
    await session.execute(delete(WalkThrough).where(WalkThrough.transaction_id == transaction_id))
    estimate_ids = select(LoanEstimate.id).where(LoanEstimate.transaction_id == transaction_id)
    await session.execute(
        delete(LoanEstimateFee).where(LoanEstimateFee.loan_estimate_id.in_(estimate_ids))
    )
    await session.execute(delete(LoanEstimate).where(LoanEstimate.transaction_id == transaction_id))
    for model in _DEPENDENT_MODELS:
        await session.execute(delete(model).where(model.transaction_id == transaction_id))
    await session.delete(txn)
    await session.commit()
    logger.info("Transaction %s purged by %s", txn.reference_code, user.user_id)


def _plain(value):
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value
