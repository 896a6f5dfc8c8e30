# This project was developed with assistance from AI tools.
"""Closing appointment scheduling and the buyer's readiness confirmation."""

import logging
from datetime import UTC, datetime

from db import ClosingAppointment, PartyRole
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.closing_appointment import AppointmentConfirmation, AppointmentRequest
from .audit import write_activity
from .notifications import NotificationEvent, publish
from .phase_gate import announce_gate, settle_transaction
from .task_ledger import reopen_task, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

SCHEDULER_PARTIES = (PartyRole.AGENT, PartyRole.TITLE_OFFICER)

_CHECKLIST = (
    ("photo_id_ready", "government-issued photo ID"),
    ("certified_funds_ready", "certified funds for closing"),
    ("proof_of_insurance_ready", "proof of homeowner's insurance"),
)


async def _appointment(session: AsyncSession, transaction_id: int) -> ClosingAppointment | None:
    return (
        await session.execute(
            select(ClosingAppointment)
            .where(ClosingAppointment.transaction_id == transaction_id)
            .with_for_update()
        )
    ).scalar_one_or_none()


async def get_appointment(
    session: AsyncSession, user: UserContext, transaction_id: int,
) -> ClosingAppointment:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    appointment = (
        await session.execute(
            select(ClosingAppointment).where(ClosingAppointment.transaction_id == txn.id)
        )
    ).scalar_one_or_none()
    if appointment is None:
        raise NotFoundError("No closing appointment has been scheduled")
    return appointment


async def schedule_appointment(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: AppointmentRequest,
) -> ClosingAppointment:
    """Set or move the appointment; moving it needs the buyer to confirm again."""
    txn = await require_transaction(
        session, user, transaction_id, parties=SCHEDULER_PARTIES, for_update=True,
    )
    appointment = await _appointment(session, txn.id)
    rescheduled = appointment is not None
    if appointment is None:
        appointment = ClosingAppointment(transaction_id=txn.id)
        session.add(appointment)
    else:
        await reopen_task(session, txn, "closing_appointment_confirmed", updated_by=user.user_id)

    appointment.scheduled_at = request.scheduled_at
    appointment.location = request.location
    appointment.notes = request.notes
    appointment.scheduled_by = user.user_id
    appointment.buyer_confirmed = False
    appointment.confirmed_at = None
    for flag, _ in _CHECKLIST:
        setattr(appointment, flag, False)

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action=(
            "closing_appointment_rescheduled" if rescheduled else "closing_appointment_scheduled"
        ),
        details={"scheduled_at": request.scheduled_at.isoformat(), "location": request.location},
    )
    await session.commit()
    await session.refresh(appointment)

    publish(
        NotificationEvent(
            event_type="closing_appointment_scheduled",
            transaction_id=txn.id,
            recipient_ids=tuple(uid for uid in (txn.buyer_id, txn.seller_id) if uid),
            context={
                "reference_code": txn.reference_code,
                "scheduled_at": request.scheduled_at.strftime("%B %d, %Y %I:%M %p"),
                "location": request.location,
            },
        )
    )
    return appointment


async def confirm_appointment(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: AppointmentConfirmation,
) -> ClosingAppointment:
    """Buyer confirms attendance once every checklist item is ready."""
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.BUYER,), for_update=True,
    )
    appointment = await _appointment(session, txn.id)
    if appointment is None:
        raise NotFoundError("No closing appointment has been scheduled")

    missing = [label for flag, label in _CHECKLIST if not getattr(request, flag)]
    if missing:
        raise ValidationError(f"Bring the following before confirming: {', '.join(missing)}")

    for flag, _ in _CHECKLIST:
        setattr(appointment, flag, True)
    appointment.buyer_confirmed = True
    appointment.confirmed_at = datetime.now(UTC)
    await upsert_task_by_code(
        session, txn.id, "closing_appointment_confirmed", updated_by=user.user_id,
    )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="closing_appointment_confirmed",
        details={"scheduled_at": appointment.scheduled_at.isoformat()},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(appointment)
    await session.refresh(txn)
    logger.info("Closing appointment confirmed for transaction %s", txn.reference_code)
    announce_gate(txn, gate)
    return appointment
