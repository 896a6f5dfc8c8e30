# This project was developed with assistance from AI tools.
"""Task catalog seeding.

Idempotent: templates are upserted by ``code`` so re-running after a catalog
change renames or re-orders steps without duplicating rows.
"""

import logging

from db import Task, dialect_insert
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .fixtures import TASK_TEMPLATES, compute_catalog_hash

logger = logging.getLogger(__name__)


async def seed_task_templates(session: AsyncSession) -> dict:
    """Upsert every task template and commit."""
    rows = [
        {
            "code": t["code"],
            "name": t["name"],
            "phase": t["phase"],
            "position": position,
            "gating": t["gating"],
            "manual": t.get("manual", False),
        }
        for position, t in enumerate(TASK_TEMPLATES, start=1)
    ]
    stmt = dialect_insert(session, Task).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=["code"],
        set_={
            "name": stmt.excluded.name,
            "phase": stmt.excluded.phase,
            "position": stmt.excluded.position,
            "gating": stmt.excluded.gating,
            "manual": stmt.excluded.manual,
        },
    )
    await session.execute(stmt)
    await session.commit()

    total = await session.scalar(select(func.count(Task.id)))
    catalog_hash = compute_catalog_hash()
    logger.info("Task catalog seeded: %d templates (hash=%s)", total, catalog_hash)
    return {"status": "seeded", "templates": total, "catalog_hash": catalog_hash}
