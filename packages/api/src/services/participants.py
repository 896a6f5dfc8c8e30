# This project was developed with assistance from AI tools.
"""Participant directory kept in step with token claims."""

from db import Participant, dialect_insert
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import UserContext


async def ensure_participant(session: AsyncSession, user: UserContext) -> None:
    """Insert or refresh the caller's directory entry (no commit).

    Blank claims never overwrite contact details already on file.
    """
    stmt = dialect_insert(session, Participant).values(
        user_id=user.user_id,
        full_name=user.name or "",
        email=user.email or "",
    )
    set_ = {"updated_at": func.now()}
    if user.name:
        set_["full_name"] = stmt.excluded.full_name
    if user.email:
        set_["email"] = stmt.excluded.email
    await session.execute(stmt.on_conflict_do_update(index_elements=["user_id"], set_=set_))
