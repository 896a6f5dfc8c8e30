# This project was developed with assistance from AI tools.
"""Loan funding, disbursements and deed recording.

The funding record is created on first write. Status only moves forward
through ``FundingStatus.valid_transitions()``; ``completed`` additionally
needs the deed recorded. Each mutator runs the phase gate before commit.
"""

import logging
from datetime import UTC, datetime

from db import (
    Disbursement,
    Funding,
    FundingStatus,
    PartyRole,
    RecordingLog,
    RecordingStatus,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidStateError, NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.funding import DisbursementCreate, FundingUpdate, RecordingComplete
from .audit import write_activity
from .notifications import NotificationEvent, publish
from .phase_gate import announce_gate, settle_transaction
from .state_machine import require_transition
from .task_ledger import is_task_completed, reopen_task, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

FUNDING_PARTIES = (PartyRole.LENDER, PartyRole.TITLE_OFFICER)
RECORDING_PARTIES = (PartyRole.TITLE_OFFICER,)

_FUNDED_STATUSES = frozenset(
    {FundingStatus.FUNDED, FundingStatus.DISBURSED, FundingStatus.COMPLETED}
)


async def _funding(
    session: AsyncSession,
    transaction_id: int,
    *,
    create: bool = False,
) -> Funding | None:
    funding = (
        await session.execute(
            select(Funding).where(Funding.transaction_id == transaction_id).with_for_update()
        )
    ).scalar_one_or_none()
    if funding is None and create:
        funding = Funding(
            transaction_id=transaction_id,
            status=FundingStatus.PENDING,
            recording_status=RecordingStatus.NOT_STARTED,
            keys_delivered=False,
            documents_delivered=False,
        )
        session.add(funding)
        await session.flush()
    return funding


async def get_funding(session: AsyncSession, user: UserContext, transaction_id: int) -> dict:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    funding = (
        await session.execute(select(Funding).where(Funding.transaction_id == txn.id))
    ).scalar_one_or_none()
    if funding is None:
        raise NotFoundError("Funding has not started for this transaction")
    disbursements = (
        await session.execute(
            select(Disbursement)
            .where(Disbursement.transaction_id == txn.id)
            .order_by(Disbursement.id)
        )
    ).scalars().all()
    log = (
        await session.execute(
            select(RecordingLog)
            .where(RecordingLog.transaction_id == txn.id)
            .order_by(RecordingLog.id)
        )
    ).scalars().all()
    return {"funding": funding, "disbursements": list(disbursements), "recording_log": list(log)}


async def update_funding(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    update: FundingUpdate,
) -> Funding:
    """Coalescing update of funding status and delivery flags."""
    txn = await require_transaction(
        session, user, transaction_id, parties=FUNDING_PARTIES, for_update=True,
    )
    funding = await _funding(session, txn.id, create=True)
    changes = {k: v for k, v in update.model_dump(exclude_unset=True).items() if v is not None}

    new_status = changes.get("status")
    if new_status is not None and new_status != funding.status:
        require_transition(funding.status, new_status, entity="funding")
        if (
            new_status == FundingStatus.COMPLETED
            and funding.recording_status != RecordingStatus.COMPLETED
        ):
            raise InvalidStateError(
                "Funding cannot complete before the deed is recorded",
                current_state=funding.status.value,
            )
        now = datetime.now(UTC)
        previous = funding.status
        funding.status = new_status
        if new_status in _FUNDED_STATUSES and funding.funded_at is None:
            funding.funded_at = now
        if new_status == FundingStatus.COMPLETED and funding.completed_at is None:
            funding.completed_at = now
        logger.info(
            "Funding for transaction %s: %s -> %s",
            txn.reference_code, previous.value, new_status.value,
        )
    # Restating the current funded status re-confirms the ledger step, which
    # a phase revert may have reset.
    if new_status is not None and funding.status in _FUNDED_STATUSES:
        await upsert_task_by_code(session, txn.id, "loan_funded", updated_by=user.user_id)

    if "keys_delivered" in changes:
        funding.keys_delivered = changes["keys_delivered"]
        if funding.keys_delivered:
            await upsert_task_by_code(session, txn.id, "keys_delivered", updated_by=user.user_id)
        else:
            await reopen_task(session, txn, "keys_delivered", updated_by=user.user_id)
    if "documents_delivered" in changes:
        funding.documents_delivered = changes["documents_delivered"]

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="funding_updated",
        details={k: getattr(v, "value", v) for k, v in changes.items()},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(funding)
    await session.refresh(txn)
    announce_gate(txn, gate)
    return funding


async def add_disbursement(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: DisbursementCreate,
) -> Disbursement:
    """Schedule a payout from the funded loan."""
    txn = await require_transaction(
        session, user, transaction_id, parties=FUNDING_PARTIES, for_update=True,
    )
    funding = await _funding(session, txn.id)
    if funding is None or funding.status not in _FUNDED_STATUSES:
        raise InvalidStateError(
            "Disbursements require a funded loan",
            current_state=funding.status.value if funding else FundingStatus.PENDING.value,
        )
    disbursement = Disbursement(
        transaction_id=txn.id,
        payee=request.payee,
        amount=request.amount,
        method=request.method,
        status="scheduled",
    )
    session.add(disbursement)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="disbursement_added",
        details={"payee": request.payee, "amount": str(request.amount)},
    )
    await session.commit()
    await session.refresh(disbursement)
    return disbursement


async def initiate_recording(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    county_reference: str,
) -> Funding:
    """Submit the deed to the county recorder."""
    txn = await require_transaction(
        session, user, transaction_id, parties=RECORDING_PARTIES, for_update=True,
    )
    funding = await _funding(session, txn.id, create=True)
    require_transition(funding.recording_status, RecordingStatus.IN_PROGRESS, entity="recording")

    funding.recording_status = RecordingStatus.IN_PROGRESS
    funding.county_reference = county_reference
    session.add(
        RecordingLog(
            transaction_id=txn.id,
            action="submitted",
            status=RecordingStatus.IN_PROGRESS.value,
            county_reference=county_reference,
            created_by=user.user_id,
        )
    )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="recording_initiated",
        details={"county_reference": county_reference},
    )
    await session.commit()
    await session.refresh(funding)
    return funding


async def complete_recording(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: RecordingComplete,
) -> Funding:
    """Record the county's decision on the deed."""
    if request.status not in (RecordingStatus.COMPLETED, RecordingStatus.REJECTED):
        raise ValidationError("Recording can only be completed or rejected")
    txn = await require_transaction(
        session, user, transaction_id, parties=RECORDING_PARTIES, for_update=True,
    )
    funding = await _funding(session, txn.id)
    if funding is None:
        raise NotFoundError("Recording has not been initiated for this transaction")
    reconfirm = (
        funding.recording_status == RecordingStatus.COMPLETED
        and request.status == RecordingStatus.COMPLETED
        and not await is_task_completed(session, txn.id, "deed_recorded")
    )
    if not reconfirm:
        require_transition(funding.recording_status, request.status, entity="recording")

    funding.recording_status = request.status
    if request.status == RecordingStatus.COMPLETED:
        if not reconfirm:
            funding.recording_completed_at = request.recorded_at or datetime.now(UTC)
        await upsert_task_by_code(session, txn.id, "deed_recorded", updated_by=user.user_id)
    session.add(
        RecordingLog(
            transaction_id=txn.id,
            action="recorded" if request.status == RecordingStatus.COMPLETED else "rejected",
            status=request.status.value,
            county_reference=funding.county_reference,
            notes=request.notes,
            created_by=user.user_id,
        )
    )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action=f"recording_{request.status.value}",
        details={"county_reference": funding.county_reference},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(funding)
    await session.refresh(txn)
    logger.info(
        "Recording %s for transaction %s (%s)",
        request.status.value, txn.reference_code, funding.county_reference,
    )

    announce_gate(txn, gate)
    if request.status == RecordingStatus.COMPLETED:
        publish(
            NotificationEvent(
                event_type="recording_completed",
                transaction_id=txn.id,
                recipient_ids=tuple(
                    uid for uid in (txn.buyer_id, txn.seller_id, txn.agent_id) if uid
                ),
                context={
                    "reference_code": txn.reference_code,
                    "county_reference": funding.county_reference or "",
                },
            )
        )
    return funding
