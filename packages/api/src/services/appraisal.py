# This project was developed with assistance from AI tools.
"""Property appraisal for the buyer's lender.

    ordered -> scheduled -> approved
                         -> low_appraisal -> approved | cancelled

An appraisal at or above the purchase price is approved outright. A low
appraisal waits for the parties to resolve the gap: proceed as-is, reduce
the price, have the buyer cover the difference, or cancel the contract.
Approval completes ``appraisal_completed`` and satisfies the appraisal
contingency.
"""

import logging
from datetime import UTC, datetime

from db import (
    Appraisal,
    AppraisalResolution,
    AppraisalStatus,
    ContingencyType,
    PartyRole,
    Transaction,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..schemas.appraisal import (
    AppraisalCompleteRequest,
    AppraisalOrderRequest,
    AppraisalResolveRequest,
    AppraisalScheduleRequest,
)
from ..schemas.auth import UserContext
from .audit import write_activity
from .contingency import satisfy_contingency
from .notifications import NotificationEvent, publish
from .phase_gate import announce_gate, settle_transaction
from .scope import ensure_party
from .state_machine import require_transition
from .task_ledger import is_task_completed, upsert_task_by_code
from .transaction import announce_cancellation, apply_cancellation, require_transaction

logger = logging.getLogger(__name__)

LENDING_PARTIES = (PartyRole.LENDER, PartyRole.AGENT)
RESOLVE_PARTIES = (PartyRole.BUYER, PartyRole.SELLER, PartyRole.AGENT)

# Who may choose each way out of a low appraisal.
_RESOLUTION_PARTIES = {
    AppraisalResolution.PROCEED_AS_IS: (PartyRole.BUYER, PartyRole.AGENT),
    AppraisalResolution.BUYER_PAYS_DIFFERENCE: (PartyRole.BUYER, PartyRole.AGENT),
    AppraisalResolution.PRICE_REDUCED: (PartyRole.SELLER, PartyRole.AGENT),
    AppraisalResolution.CONTRACT_CANCELLED: (PartyRole.BUYER, PartyRole.AGENT),
}


async def _appraisal(session: AsyncSession, transaction_id: int) -> Appraisal | None:
    return (
        await session.execute(
            select(Appraisal).where(Appraisal.transaction_id == transaction_id).with_for_update()
        )
    ).scalar_one_or_none()


async def _require_appraisal(session: AsyncSession, transaction_id: int) -> Appraisal:
    appraisal = await _appraisal(session, transaction_id)
    if appraisal is None:
        raise NotFoundError("No appraisal has been ordered for this transaction")
    return appraisal


async def get_appraisal(session: AsyncSession, user: UserContext, transaction_id: int) -> Appraisal:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    appraisal = (
        await session.execute(select(Appraisal).where(Appraisal.transaction_id == txn.id))
    ).scalar_one_or_none()
    if appraisal is None:
        raise NotFoundError("No appraisal has been ordered for this transaction")
    return appraisal


async def order_appraisal(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: AppraisalOrderRequest,
) -> Appraisal:
    """Order the appraisal at the current purchase price.

    An appraisal can be ordered again only after a phase revert reopened the
    appraisal step; the earlier result is discarded.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=LENDING_PARTIES, for_update=True,
    )
    appraisal = await _appraisal(session, txn.id)
    if appraisal is not None and await is_task_completed(session, txn.id, "appraisal_completed"):
        raise ConflictError(f"Transaction {txn.reference_code} already has a completed appraisal")

    if appraisal is None:
        appraisal = Appraisal(transaction_id=txn.id)
        session.add(appraisal)
    appraisal.status = AppraisalStatus.ORDERED
    appraisal.purchase_price = txn.purchase_price
    appraisal.appraisal_cost = request.appraisal_cost
    appraisal.appraiser_name = request.appraiser_name
    appraisal.ordered_by = user.user_id
    appraisal.ordered_at = datetime.now(UTC)
    for field in (
        "scheduled_date",
        "appraised_value",
        "appraisal_gap",
        "report_reference",
        "appraiser_notes",
        "resolution",
        "new_purchase_price",
        "completed_at",
        "resolved_at",
    ):
        setattr(appraisal, field, None)

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="appraisal_ordered",
        details={"purchase_price": str(txn.purchase_price), "cost": str(request.appraisal_cost)},
    )
    await session.commit()
    await session.refresh(appraisal)
    return appraisal


async def schedule_appraisal(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: AppraisalScheduleRequest,
) -> Appraisal:
    txn = await require_transaction(
        session, user, transaction_id, parties=LENDING_PARTIES, for_update=True,
    )
    appraisal = await _require_appraisal(session, txn.id)
    require_transition(appraisal.status, AppraisalStatus.SCHEDULED, entity="appraisal")

    appraisal.status = AppraisalStatus.SCHEDULED
    appraisal.scheduled_date = request.scheduled_date
    if request.appraiser_name is not None:
        appraisal.appraiser_name = request.appraiser_name
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="appraisal_scheduled",
        details={"date": request.scheduled_date.isoformat()},
    )
    await session.commit()
    await session.refresh(appraisal)
    return appraisal


async def _approve(
    session: AsyncSession, txn: Transaction, appraisal: Appraisal, *, actor_id: str,
) -> None:
    appraisal.status = AppraisalStatus.APPROVED
    await upsert_task_by_code(session, txn.id, "appraisal_completed", updated_by=actor_id)
    await satisfy_contingency(session, txn.id, ContingencyType.APPRAISAL, actor_id=actor_id)


async def complete_appraisal(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: AppraisalCompleteRequest,
) -> Appraisal:
    """Record the appraised value against the purchase price."""
    txn = await require_transaction(
        session, user, transaction_id, parties=LENDING_PARTIES, for_update=True,
    )
    appraisal = await _require_appraisal(session, txn.id)
    low = request.appraised_value < appraisal.purchase_price
    target = AppraisalStatus.LOW_APPRAISAL if low else AppraisalStatus.APPROVED
    require_transition(appraisal.status, target, entity="appraisal")

    appraisal.appraised_value = request.appraised_value
    appraisal.appraisal_gap = appraisal.purchase_price - request.appraised_value
    appraisal.report_reference = request.report_reference
    appraisal.appraiser_notes = request.appraiser_notes
    appraisal.completed_at = datetime.now(UTC)
    if low:
        appraisal.status = AppraisalStatus.LOW_APPRAISAL
    else:
        await _approve(session, txn, appraisal, actor_id=user.user_id)

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="appraisal_completed",
        details={
            "appraised_value": str(request.appraised_value),
            "gap": str(appraisal.appraisal_gap),
            "status": appraisal.status.value,
        },
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(appraisal)
    await session.refresh(txn)

    announce_gate(txn, gate)
    if low:
        logger.info(
            "Low appraisal on transaction %s: gap %s", txn.reference_code, appraisal.appraisal_gap,
        )
        publish(
            NotificationEvent(
                event_type="appraisal_low",
                transaction_id=txn.id,
                recipient_ids=tuple(
                    uid for uid in (txn.buyer_id, txn.seller_id, txn.agent_id) if uid
                ),
                context={
                    "reference_code": txn.reference_code,
                    "appraised_value": f"{appraisal.appraised_value:,.2f}",
                    "appraisal_gap": f"{appraisal.appraisal_gap:,.2f}",
                },
            )
        )
    return appraisal


async def resolve_low_appraisal(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: AppraisalResolveRequest,
) -> Appraisal:
    """Settle a low appraisal; cancelling the contract cancels the transaction."""
    txn = await require_transaction(
        session, user, transaction_id, parties=RESOLVE_PARTIES, for_update=True,
    )
    ensure_party(txn, user, *_RESOLUTION_PARTIES[request.resolution])
    appraisal = await _require_appraisal(session, txn.id)
    cancelling = request.resolution == AppraisalResolution.CONTRACT_CANCELLED
    target = AppraisalStatus.CANCELLED if cancelling else AppraisalStatus.APPROVED
    require_transition(appraisal.status, target, entity="appraisal")

    if request.resolution == AppraisalResolution.PRICE_REDUCED:
        if request.new_purchase_price is None:
            raise ValidationError("A price reduction requires the new purchase price")
        if request.new_purchase_price >= txn.purchase_price:
            raise ValidationError("The new purchase price must be below the current price")
        appraisal.new_purchase_price = request.new_purchase_price
        txn.purchase_price = request.new_purchase_price

    appraisal.resolution = request.resolution
    appraisal.resolved_at = datetime.now(UTC)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="appraisal_resolved",
        details={
            "resolution": request.resolution.value,
            "new_purchase_price": (
                str(request.new_purchase_price) if request.new_purchase_price else None
            ),
            "notes": request.notes,
        },
    )

    if cancelling:
        appraisal.status = AppraisalStatus.CANCELLED
        reason = request.notes or "Contract cancelled after a low appraisal"
        await apply_cancellation(session, txn, actor_id=user.user_id, reason=reason)
        await session.commit()
        await session.refresh(appraisal)
        await session.refresh(txn)
        logger.info("Transaction %s cancelled on low appraisal", txn.reference_code)
        announce_cancellation(txn, reason)
        return appraisal

    await _approve(session, txn, appraisal, actor_id=user.user_id)
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(appraisal)
    await session.refresh(txn)
    announce_gate(txn, gate)
    return appraisal
