# This project was developed with assistance from AI tools.
"""Contract contingencies carried over from the accepted offer."""

import logging
from datetime import UTC, datetime

from db import Contingency, ContingencyStatus, ContingencyType, PartyRole
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidStateError, NotFoundError
from ..schemas.auth import UserContext
from ..schemas.contingency import ContingencyUpdate
from .audit import write_activity
from .state_machine import require_transition
from .transaction import require_transaction

logger = logging.getLogger(__name__)

BUYER_SIDE = (PartyRole.BUYER, PartyRole.AGENT)


async def list_contingencies(
    session: AsyncSession, user: UserContext, transaction_id: int,
) -> list[Contingency]:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    result = await session.execute(
        select(Contingency).where(Contingency.transaction_id == txn.id).order_by(Contingency.id)
    )
    return list(result.scalars().all())


async def satisfy_contingency(
    session: AsyncSession,
    transaction_id: int,
    contingency_type: ContingencyType,
    *,
    actor_id: str | None = None,
) -> bool:
    """Mark an open contingency satisfied (no commit); False when there is none open."""
    contingency = (
        await session.execute(
            select(Contingency).where(
                Contingency.transaction_id == transaction_id,
                Contingency.contingency_type == contingency_type,
            )
        )
    ).scalar_one_or_none()
    if contingency is None or contingency.status != ContingencyStatus.OPEN:
        return False
    contingency.status = ContingencyStatus.SATISFIED
    contingency.resolved_by = actor_id
    contingency.resolved_at = datetime.now(UTC)
    return True


async def update_contingency(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    contingency_id: int,
    update: ContingencyUpdate,
) -> Contingency:
    """Move a deadline, or satisfy / waive an open contingency."""
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    contingency = await session.get(Contingency, contingency_id)
    if contingency is None or contingency.transaction_id != txn.id:
        raise NotFoundError(f"Contingency {contingency_id} not found on this transaction")

    changes = {}
    if update.status is not None and update.status != contingency.status:
        require_transition(contingency.status, update.status, entity="contingency")
        contingency.status = update.status
        contingency.resolved_by = user.user_id
        contingency.resolved_at = datetime.now(UTC)
        changes["status"] = update.status.value
    if update.deadline is not None:
        if contingency.status != ContingencyStatus.OPEN:
            raise InvalidStateError(
                "Only an open contingency has a deadline", current_state=contingency.status.value,
            )
        contingency.deadline = update.deadline
        changes["deadline"] = update.deadline.isoformat()
    if update.notes is not None:
        contingency.notes = update.notes
    if not changes and update.notes is None:
        return contingency

    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="contingency_updated",
        details={"type": contingency.contingency_type.value, **changes},
    )
    await session.commit()
    await session.refresh(contingency)
    if "status" in changes:
        logger.info(
            "Contingency %s on transaction %s %s",
            contingency.contingency_type.value, txn.reference_code, changes["status"],
        )
    return contingency
