# This project was developed with assistance from AI tools.
"""Moving preparation: possession, movers, address change and utilities.

Every section is an upsert on the transaction's single preparation record;
each write completes the ledger task it corresponds to and runs the gate,
so the last moving task closes the deal.
"""

import logging

from db import MovingPreparation, PartyRole, UtilityTransfer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import UserContext
from ..schemas.moving import (
    AddressChangeUpdate,
    MoversUpdate,
    PossessionUpdate,
    UtilityTransferCreate,
)
from .audit import write_activity
from .phase_gate import announce_gate, settle_transaction
from .task_ledger import upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

BUYER_SIDE = (PartyRole.BUYER, PartyRole.AGENT)

_PREPARATION_FIELDS = (
    "possession_date",
    "possession_time",
    "moving_company",
    "moving_date",
    "mover_confirmation",
    "new_address",
    "address_change_effective",
    "address_change_filed",
)


async def _preparation(session: AsyncSession, transaction_id: int) -> MovingPreparation | None:
    return (
        await session.execute(
            select(MovingPreparation).where(MovingPreparation.transaction_id == transaction_id)
        )
    ).scalar_one_or_none()


async def moving_view(session: AsyncSession, transaction_id: int) -> dict:
    prep = await _preparation(session, transaction_id)
    utilities = (
        await session.execute(
            select(UtilityTransfer)
            .where(UtilityTransfer.transaction_id == transaction_id)
            .order_by(UtilityTransfer.id)
        )
    ).scalars().all()
    view = {field: getattr(prep, field) if prep else None for field in _PREPARATION_FIELDS}
    view["address_change_filed"] = bool(view["address_change_filed"])
    view["transaction_id"] = transaction_id
    view["utilities"] = list(utilities)
    return view


async def get_moving(session: AsyncSession, user: UserContext, transaction_id: int) -> dict:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    return await moving_view(session, txn.id)


async def _apply(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    values: dict,
    *,
    task_code: str | None,
    action: str,
) -> dict:
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    prep = await _preparation(session, txn.id)
    if prep is None:
        prep = MovingPreparation(transaction_id=txn.id, address_change_filed=False)
        session.add(prep)
    for field, value in values.items():
        setattr(prep, field, value)
    if task_code is not None:
        await upsert_task_by_code(session, txn.id, task_code, updated_by=user.user_id)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action=action,
        details={k: v.isoformat() if hasattr(v, "isoformat") else v for k, v in values.items()},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(txn)
    announce_gate(txn, gate)
    return await moving_view(session, txn.id)


async def set_possession(
    session: AsyncSession, user: UserContext, transaction_id: int, request: PossessionUpdate,
) -> dict:
    return await _apply(
        session, user, transaction_id, request.model_dump(),
        task_code="possession_date_set", action="possession_date_set",
    )


async def schedule_movers(
    session: AsyncSession, user: UserContext, transaction_id: int, request: MoversUpdate,
) -> dict:
    return await _apply(
        session, user, transaction_id, request.model_dump(),
        task_code="movers_scheduled", action="movers_scheduled",
    )


async def file_address_change(
    session: AsyncSession, user: UserContext, transaction_id: int, request: AddressChangeUpdate,
) -> dict:
    values = {
        "new_address": request.new_address,
        "address_change_effective": request.address_change_effective,
        "address_change_filed": request.filed,
    }
    return await _apply(
        session, user, transaction_id, values,
        task_code="address_change_filed" if request.filed else None,
        action="address_change_updated",
    )


async def add_utility_transfer(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: UtilityTransferCreate,
) -> UtilityTransfer:
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    transfer = UtilityTransfer(transaction_id=txn.id, status="scheduled", **request.model_dump())
    session.add(transfer)
    await upsert_task_by_code(session, txn.id, "utilities_transferred", updated_by=user.user_id)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="utility_transfer_added",
        details={"utility_type": request.utility_type, "provider": request.provider},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(transfer)
    await session.refresh(txn)
    announce_gate(txn, gate)
    return transfer
