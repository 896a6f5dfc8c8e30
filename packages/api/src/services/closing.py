# This project was developed with assistance from AI tools.
"""Closing disclosure service.

Aggregates what the buyer reviews before closing (disclosure, fees, loan
estimate, wire instructions, discrepancies) and records the disclosure
workflow. The disclosure upload stores the file first, then writes the row,
the activity entry and the ledger task in one commit; the file is removed
again if that commit fails.
"""

import logging
from datetime import UTC, datetime
from decimal import Decimal

from db import (
    ClosingDiscrepancy,
    ClosingDisclosure,
    ClosingFee,
    DiscrepancyStatus,
    DisclosureStatus,
    FeePaidBy,
    LoanEstimate,
    LoanEstimateFee,
    PartyRole,
    WireInstructions,
)
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidStateError, NotFoundError
from ..schemas.auth import UserContext
from ..schemas.closing import (
    ClosingFeesRequest,
    DiscrepancyCreate,
    LoanEstimateRequest,
    WireInstructionsRequest,
)
from .audit import write_activity
from .notifications import NotificationEvent, publish
from .phase_gate import announce_gate, settle_transaction
from .scope import ALL_PARTIES
from .storage import get_storage_service, staged_upload, validate_upload
from .task_ledger import is_task_completed, reopen_task, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

LENDING_PARTIES = (PartyRole.LENDER, PartyRole.TITLE_OFFICER, PartyRole.AGENT)


async def _disclosure(session: AsyncSession, transaction_id: int) -> ClosingDisclosure | None:
    return (
        await session.execute(
            select(ClosingDisclosure).where(ClosingDisclosure.transaction_id == transaction_id)
        )
    ).scalar_one_or_none()


async def _loan_estimate(session: AsyncSession, transaction_id: int) -> LoanEstimate | None:
    return (
        await session.execute(
            select(LoanEstimate).where(LoanEstimate.transaction_id == transaction_id)
        )
    ).scalar_one_or_none()


async def _closing_fees(session: AsyncSession, transaction_id: int) -> list[ClosingFee]:
    result = await session.execute(
        select(ClosingFee)
        .where(ClosingFee.transaction_id == transaction_id)
        .order_by(ClosingFee.id)
    )
    return list(result.scalars().all())


def total_due(fees: list[ClosingFee]) -> Decimal:
    """Sum of the closing fees the buyer pays."""
    return sum(
        (Decimal(fee.amount) for fee in fees if fee.paid_by == FeePaidBy.BUYER),
        Decimal("0"),
    )


async def get_closing_summary(
    session: AsyncSession, user: UserContext, transaction_id: int,
) -> dict:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    fees = await _closing_fees(session, txn.id)

    estimate = await _loan_estimate(session, txn.id)
    estimate_view = None
    if estimate is not None:
        estimate_fees = (
            await session.execute(
                select(LoanEstimateFee)
                .where(LoanEstimateFee.loan_estimate_id == estimate.id)
                .order_by(LoanEstimateFee.id)
            )
        ).scalars().all()
        estimate_view = {
            "id": estimate.id,
            "loan_amount": estimate.loan_amount,
            "interest_rate": estimate.interest_rate,
            "term_months": estimate.term_months,
            "estimated_cash_to_close": estimate.estimated_cash_to_close,
            "issued_at": estimate.issued_at,
            "fees": list(estimate_fees),
        }

    wire = (
        await session.execute(
            select(WireInstructions).where(WireInstructions.transaction_id == txn.id)
        )
    ).scalar_one_or_none()
    discrepancies = (
        await session.execute(
            select(ClosingDiscrepancy)
            .where(ClosingDiscrepancy.transaction_id == txn.id)
            .order_by(ClosingDiscrepancy.id)
        )
    ).scalars().all()

    return {
        "transaction_id": txn.id,
        "disclosure": await _disclosure(session, txn.id),
        "closing_fees": fees,
        "total_due": total_due(fees),
        "loan_estimate": estimate_view,
        "wire_instructions": wire,
        "discrepancies": list(discrepancies),
    }


async def record_loan_estimate(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: LoanEstimateRequest,
) -> LoanEstimate:
    """Create or replace the loan estimate and its fee lines."""
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.LENDER,), for_update=True,
    )
    estimate = await _loan_estimate(session, txn.id)
    fields = request.model_dump(exclude={"fees"})
    if estimate is None:
        estimate = LoanEstimate(transaction_id=txn.id, **fields)
        session.add(estimate)
        await session.flush()
    else:
        for field, value in fields.items():
            setattr(estimate, field, value)
        await session.execute(
            delete(LoanEstimateFee).where(LoanEstimateFee.loan_estimate_id == estimate.id)
        )
    for fee in request.fees:
        session.add(LoanEstimateFee(loan_estimate_id=estimate.id, **fee.model_dump()))

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="loan_estimate_recorded",
        details={"loan_amount": str(request.loan_amount), "fees": len(request.fees)},
    )
    await session.commit()
    await session.refresh(estimate)
    return estimate


async def set_disclosure_fees(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: ClosingFeesRequest,
) -> list[ClosingFee]:
    """Replace the closing fee schedule."""
    txn = await require_transaction(
        session, user, transaction_id, parties=LENDING_PARTIES, for_update=True,
    )
    await session.execute(delete(ClosingFee).where(ClosingFee.transaction_id == txn.id))
    for fee in request.fees:
        session.add(ClosingFee(transaction_id=txn.id, **fee.model_dump()))
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="closing_fees_updated",
        details={"fees": len(request.fees)},
    )
    await session.commit()
    return await _closing_fees(session, txn.id)


async def set_wire_instructions(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: WireInstructionsRequest,
) -> WireInstructions:
    """Store wire instructions; only the last four account digits are kept."""
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.TITLE_OFFICER, PartyRole.LENDER),
        for_update=True,
    )
    wire = (
        await session.execute(
            select(WireInstructions).where(WireInstructions.transaction_id == txn.id)
        )
    ).scalar_one_or_none()
    values = request.model_dump(exclude={"account_number"})
    values["account_number_last4"] = request.account_number[-4:]
    if wire is None:
        wire = WireInstructions(transaction_id=txn.id, **values)
        session.add(wire)
    else:
        for field, value in values.items():
            setattr(wire, field, value)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="wire_instructions_updated",
        details={"bank_name": request.bank_name, "verified": request.verified},
    )
    await session.commit()
    await session.refresh(wire)
    return wire


async def upload_disclosure(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    *,
    filename: str,
    content_type: str,
    file_data: bytes,
) -> ClosingDisclosure:
    """Store the Closing Disclosure and mark it received.

    A re-upload replaces the file and sends the disclosure back to review.
    """
    validate_upload(file_data, content_type)
    txn = await require_transaction(
        session, user, transaction_id, parties=LENDING_PARTIES, for_update=True,
    )
    disclosure = await _disclosure(session, txn.id)
    if disclosure is not None:
        await reopen_task(session, txn, "closing_disclosure_reviewed", updated_by=user.user_id)

    storage = get_storage_service()
    object_key = storage.build_object_key(txn.id, "closing-disclosure", filename)
    async with staged_upload(storage, file_data, object_key, content_type):
        if disclosure is None:
            disclosure = ClosingDisclosure(transaction_id=txn.id)
            session.add(disclosure)
        disclosure.status = DisclosureStatus.PENDING_REVIEW
        disclosure.file_name = filename
        disclosure.storage_key = object_key
        disclosure.uploaded_by = user.user_id
        disclosure.received_at = datetime.now(UTC)
        disclosure.acknowledged_at = None

        await upsert_task_by_code(
            session, txn.id, "closing_disclosure_received", updated_by=user.user_id,
        )
        write_activity(
            session,
            transaction_id=txn.id,
            actor_id=user.user_id,
            action="closing_disclosure_uploaded",
            details={"file_name": filename, "storage_key": object_key},
        )
        gate = await settle_transaction(session, txn, actor_id=user.user_id)
        await session.commit()
    await session.refresh(disclosure)
    await session.refresh(txn)
    logger.info("Closing Disclosure stored for transaction %s", txn.reference_code)

    announce_gate(txn, gate)
    publish(
        NotificationEvent(
            event_type="closing_disclosure_uploaded",
            transaction_id=txn.id,
            recipient_ids=(txn.buyer_id,),
            context={"reference_code": txn.reference_code},
        )
    )
    return disclosure


async def acknowledge_disclosure(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
) -> ClosingDisclosure:
    """Buyer confirms they reviewed the disclosure."""
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.BUYER,), for_update=True,
    )
    disclosure = await _disclosure(session, txn.id)
    if disclosure is None:
        raise NotFoundError("No Closing Disclosure has been received for this transaction")
    if disclosure.status == DisclosureStatus.ACKNOWLEDGED and await is_task_completed(
        session, txn.id, "closing_disclosure_reviewed",
    ):
        raise InvalidStateError(
            "Closing Disclosure is already acknowledged",
            current_state=disclosure.status.value,
        )

    disclosure.status = DisclosureStatus.ACKNOWLEDGED
    disclosure.acknowledged_at = datetime.now(UTC)
    await upsert_task_by_code(
        session, txn.id, "closing_disclosure_reviewed", updated_by=user.user_id,
    )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="closing_disclosure_acknowledged",
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(disclosure)
    await session.refresh(txn)
    announce_gate(txn, gate)
    return disclosure


async def flag_discrepancy(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: DiscrepancyCreate,
) -> ClosingDiscrepancy:
    """Record a fee that differs from the estimate (difference = actual - estimated)."""
    txn = await require_transaction(
        session, user, transaction_id, parties=ALL_PARTIES, for_update=True,
    )
    difference = request.actual_amount - request.estimated_amount
    discrepancy = ClosingDiscrepancy(
        transaction_id=txn.id,
        fee_item=request.fee_item,
        estimated_amount=request.estimated_amount,
        actual_amount=request.actual_amount,
        difference=difference,
        notes=request.notes,
        status=DiscrepancyStatus.OPEN,
        reported_by=user.user_id,
    )
    session.add(discrepancy)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="discrepancy_flagged",
        details={"fee_item": request.fee_item, "difference": str(difference)},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(discrepancy)
    await session.refresh(txn)
    logger.info(
        "Discrepancy on '%s' flagged for transaction %s (%s)",
        request.fee_item, txn.reference_code, difference,
    )

    announce_gate(txn, gate)
    publish(
        NotificationEvent(
            event_type="discrepancy_flagged",
            transaction_id=txn.id,
            recipient_ids=tuple(
                uid for uid in (txn.lender_id, txn.title_officer_id, txn.agent_id) if uid
            ),
            context={
                "reference_code": txn.reference_code,
                "fee_item": request.fee_item,
                "estimated_amount": f"{request.estimated_amount:,.2f}",
                "actual_amount": f"{request.actual_amount:,.2f}",
                "difference": f"{difference:,.2f}",
            },
        )
    )
    return discrepancy


async def resolve_discrepancy(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    discrepancy_id: int,
    resolution_notes: str,
) -> ClosingDiscrepancy:
    txn = await require_transaction(
        session, user, transaction_id, parties=LENDING_PARTIES, for_update=True,
    )
    discrepancy = await session.get(ClosingDiscrepancy, discrepancy_id)
    if discrepancy is None or discrepancy.transaction_id != txn.id:
        raise NotFoundError(f"Discrepancy {discrepancy_id} not found on this transaction")
    if discrepancy.status != DiscrepancyStatus.OPEN:
        raise InvalidStateError(
            f"Discrepancy {discrepancy_id} is already resolved",
            current_state=discrepancy.status.value,
        )

    discrepancy.status = DiscrepancyStatus.RESOLVED
    discrepancy.resolution_notes = resolution_notes
    discrepancy.resolved_at = datetime.now(UTC)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="discrepancy_resolved",
        details={"discrepancy_id": discrepancy_id},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(discrepancy)
    await session.refresh(txn)
    announce_gate(txn, gate)
    return discrepancy
