# This project was developed with assistance from AI tools.
"""Transaction activity log.

Append-only entries written in the same unit of work as the mutation they
describe, so a rolled-back mutation leaves no activity behind.
"""

import logging

from db import TransactionActivity
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def write_activity(
    session: AsyncSession,
    *,
    transaction_id: int,
    action: str,
    actor_id: str | None = None,
    details: dict | None = None,
) -> TransactionActivity:
    """Stage one activity row; the caller commits."""
    activity = TransactionActivity(
        transaction_id=transaction_id,
        actor_id=actor_id,
        action=action,
        details=details,
    )
    session.add(activity)
    logger.debug("Activity %s on transaction %s by %s", action, transaction_id, actor_id)
    return activity


async def get_activity(
    session: AsyncSession,
    transaction_id: int,
    *,
    limit: int = 100,
) -> list[TransactionActivity]:
    """Return the newest activity entries for a transaction."""
    stmt = (
        select(TransactionActivity)
        .where(TransactionActivity.transaction_id == transaction_id)
        .order_by(TransactionActivity.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
