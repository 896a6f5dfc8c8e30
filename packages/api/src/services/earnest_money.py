# This project was developed with assistance from AI tools.
"""Earnest money deposit.

The buyer first confirms the title company's wire instructions by phone,
then uploads the wire confirmation; the title officer (or agent) verifies
the funds, which completes the ``earnest_money_deposited`` step. A rejected
deposit may be uploaded again.
"""

import logging
from datetime import UTC, datetime

from db import (
    EarnestMoneyDeposit,
    EarnestMoneyStatus,
    PartyRole,
    WireInstructions,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidStateError, NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.earnest_money import DepositVerificationRequest, PhoneVerificationRequest
from .audit import write_activity
from .notifications import NotificationEvent, publish
from .phase_gate import announce_gate, settle_transaction
from .state_machine import require_transition
from .storage import get_storage_service, staged_upload, validate_upload
from .task_ledger import is_task_completed, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

VERIFIER_PARTIES = (PartyRole.TITLE_OFFICER, PartyRole.AGENT)


async def _deposit(
    session: AsyncSession,
    transaction_id: int,
    *,
    create: bool = False,
) -> EarnestMoneyDeposit | None:
    deposit = (
        await session.execute(
            select(EarnestMoneyDeposit)
            .where(EarnestMoneyDeposit.transaction_id == transaction_id)
            .with_for_update()
        )
    ).scalar_one_or_none()
    if deposit is None and create:
        deposit = EarnestMoneyDeposit(
            transaction_id=transaction_id,
            status=EarnestMoneyStatus.PENDING,
            phone_verified=False,
        )
        session.add(deposit)
        await session.flush()
    return deposit


async def get_deposit(
    session: AsyncSession, user: UserContext, transaction_id: int,
) -> EarnestMoneyDeposit:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    deposit = (
        await session.execute(
            select(EarnestMoneyDeposit).where(EarnestMoneyDeposit.transaction_id == txn.id)
        )
    ).scalar_one_or_none()
    if deposit is None:
        raise NotFoundError("Earnest money has not been started for this transaction")
    return deposit


async def verify_wire_phone(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: PhoneVerificationRequest,
) -> EarnestMoneyDeposit:
    """Buyer records that the wire instructions were confirmed by phone."""
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.BUYER,), for_update=True,
    )
    wire_id = await session.scalar(
        select(WireInstructions.id).where(WireInstructions.transaction_id == txn.id)
    )
    if wire_id is None:
        raise InvalidStateError(
            "Wire instructions have not been issued for this transaction",
            current_state="no_wire_instructions",
        )

    deposit = await _deposit(session, txn.id, create=True)
    deposit.phone_verified = request.confirmed
    deposit.phone_verified_at = datetime.now(UTC) if request.confirmed else None
    deposit.phone_verified_by = user.user_id if request.confirmed else None
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="earnest_money_phone_verification",
        details={"confirmed": request.confirmed},
    )
    await session.commit()
    await session.refresh(deposit)
    if not request.confirmed:
        logger.warning(
            "Wire instructions for transaction %s NOT confirmed by phone", txn.reference_code,
        )
    return deposit


async def upload_confirmation(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    *,
    confirmation_number: str,
    filename: str,
    content_type: str,
    file_data: bytes,
) -> EarnestMoneyDeposit:
    """Buyer uploads the bank's wire confirmation."""
    validate_upload(file_data, content_type)
    if not confirmation_number.strip():
        raise ValidationError("A wire confirmation number is required")
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.BUYER,), for_update=True,
    )
    deposit = await _deposit(session, txn.id)
    if deposit is None or not deposit.phone_verified:
        raise InvalidStateError(
            "Confirm the wire instructions by phone before sending earnest money",
            current_state="phone_unverified",
        )
    require_transition(
        deposit.status, EarnestMoneyStatus.CONFIRMATION_UPLOADED, entity="earnest money",
    )

    storage = get_storage_service()
    object_key = storage.build_object_key(txn.id, "earnest-money", filename)
    async with staged_upload(storage, file_data, object_key, content_type):
        deposit.status = EarnestMoneyStatus.CONFIRMATION_UPLOADED
        deposit.confirmation_number = confirmation_number.strip()
        deposit.file_name = filename
        deposit.storage_key = object_key
        deposit.uploaded_by = user.user_id
        deposit.uploaded_at = datetime.now(UTC)
        write_activity(
            session,
            transaction_id=txn.id,
            actor_id=user.user_id,
            action="earnest_money_confirmation_uploaded",
            details={"confirmation_number": deposit.confirmation_number},
        )
        await session.commit()
    await session.refresh(deposit)

    publish(
        NotificationEvent(
            event_type="earnest_money_uploaded",
            transaction_id=txn.id,
            recipient_ids=tuple(uid for uid in (txn.title_officer_id, txn.agent_id) if uid),
            context={"reference_code": txn.reference_code},
        )
    )
    return deposit


async def verify_deposit(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: DepositVerificationRequest,
) -> EarnestMoneyDeposit:
    """Title officer accepts or rejects the uploaded deposit.

    A verified deposit whose ledger step a phase revert reset is confirmed
    again without a status change.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=VERIFIER_PARTIES, for_update=True,
    )
    deposit = await _deposit(session, txn.id)
    if deposit is None:
        raise NotFoundError("Earnest money has not been started for this transaction")

    reconfirm = (
        request.approved
        and deposit.status == EarnestMoneyStatus.VERIFIED
        and not await is_task_completed(session, txn.id, "earnest_money_deposited")
    )
    target = EarnestMoneyStatus.VERIFIED if request.approved else EarnestMoneyStatus.REJECTED
    if not reconfirm:
        require_transition(deposit.status, target, entity="earnest money")

    if request.approved:
        amount = request.amount or deposit.amount or txn.earnest_money
        if amount is None:
            raise ValidationError("The verified deposit amount is required")
        deposit.amount = amount
        txn.earnest_money = amount
        await upsert_task_by_code(
            session, txn.id, "earnest_money_deposited", updated_by=user.user_id,
        )
    deposit.status = target
    deposit.verified_by = user.user_id
    deposit.verified_at = datetime.now(UTC)
    if request.notes is not None:
        deposit.notes = request.notes

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action=f"earnest_money_{target.value}",
        details={"amount": str(deposit.amount) if deposit.amount is not None else None},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(deposit)
    await session.refresh(txn)
    logger.info("Earnest money %s for transaction %s", target.value, txn.reference_code)

    announce_gate(txn, gate)
    publish(
        NotificationEvent(
            event_type=f"earnest_money_{target.value}",
            transaction_id=txn.id,
            recipient_ids=(txn.buyer_id,),
            context={"reference_code": txn.reference_code, "notes": request.notes or ""},
        )
    )
    return deposit
