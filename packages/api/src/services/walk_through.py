# This project was developed with assistance from AI tools.
"""Final walk-through: scheduling, checklist, issues and completion."""

import logging
from datetime import UTC, datetime

from db import (
    IssueSeverity,
    PartyRole,
    WalkThrough,
    WalkThroughIssue,
    WalkThroughItem,
    WalkThroughStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidStateError, NotFoundError
from ..schemas.auth import UserContext
from ..schemas.walk_through import (
    ChecklistItemUpdate,
    IssueCreate,
    ScheduleWalkThroughRequest,
)
from .audit import write_activity
from .phase_gate import announce_gate, settle_transaction
from .task_ledger import is_task_completed, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

BUYER_SIDE = (PartyRole.BUYER, PartyRole.AGENT)

DEFAULT_CHECKLIST = (
    ("Repairs", "Agreed repairs completed"),
    ("Property Condition", "No new damage since inspection"),
    ("Vacancy", "Seller belongings removed"),
    ("Systems", "HVAC operational"),
    ("Systems", "Plumbing fixtures working"),
    ("Systems", "Electrical outlets and lights working"),
    ("Appliances", "Included appliances present and working"),
    ("Exterior", "Landscaping and exterior condition"),
)


async def _walk_through(session: AsyncSession, transaction_id: int) -> WalkThrough | None:
    return (
        await session.execute(
            select(WalkThrough).where(WalkThrough.transaction_id == transaction_id)
        )
    ).scalar_one_or_none()


async def _require_walk_through(session: AsyncSession, transaction_id: int) -> WalkThrough:
    walk = await _walk_through(session, transaction_id)
    if walk is None:
        raise NotFoundError("No walk-through has been scheduled for this transaction")
    return walk


async def walk_through_view(session: AsyncSession, walk: WalkThrough) -> dict:
    """Walk-through with its checklist and issues, ready for the response model."""
    items = (
        await session.execute(
            select(WalkThroughItem)
            .where(WalkThroughItem.walk_through_id == walk.id)
            .order_by(WalkThroughItem.id)
        )
    ).scalars().all()
    issues = (
        await session.execute(
            select(WalkThroughIssue)
            .where(WalkThroughIssue.walk_through_id == walk.id)
            .order_by(WalkThroughIssue.id)
        )
    ).scalars().all()
    return {
        "id": walk.id,
        "transaction_id": walk.transaction_id,
        "scheduled_date": walk.scheduled_date,
        "scheduled_time": walk.scheduled_time,
        "status": walk.status,
        "issues_found": walk.issues_found,
        "notes": walk.notes,
        "completed_at": walk.completed_at,
        "checklist": list(items),
        "issues": list(issues),
    }


async def get_walk_through(session: AsyncSession, user: UserContext, transaction_id: int) -> dict:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    return await walk_through_view(session, await _require_walk_through(session, txn.id))


async def schedule_walk_through(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: ScheduleWalkThroughRequest,
) -> dict:
    """Schedule (or reschedule) the walk-through; the checklist is created once.

    A completed walk-through can only be scheduled again after a phase revert
    reopened its ledger step; it then goes back to ``scheduled``.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    walk = await _walk_through(session, txn.id)
    if walk is not None and walk.status == WalkThroughStatus.COMPLETED:
        if await is_task_completed(session, txn.id, "final_walk_through_completed"):
            raise InvalidStateError(
                "The walk-through is already completed", current_state=walk.status.value,
            )
        walk.status = WalkThroughStatus.SCHEDULED
        walk.completed_at = None

    created = walk is None
    if created:
        walk = WalkThrough(transaction_id=txn.id, status=WalkThroughStatus.SCHEDULED)
        session.add(walk)
    walk.scheduled_date = request.scheduled_date
    walk.scheduled_time = request.scheduled_time
    if request.notes is not None:
        walk.notes = request.notes
    await session.flush()

    if created:
        session.add_all(
            WalkThroughItem(walk_through_id=walk.id, category=category, item=item)
            for category, item in DEFAULT_CHECKLIST
        )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="walk_through_scheduled" if created else "walk_through_rescheduled",
        details={"date": request.scheduled_date.isoformat(), "time": request.scheduled_time},
    )
    await session.commit()
    await session.refresh(walk)
    return await walk_through_view(session, walk)


async def update_checklist_item(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    item_id: int,
    update: ChecklistItemUpdate,
) -> WalkThroughItem:
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    walk = await _require_walk_through(session, txn.id)
    item = await session.get(WalkThroughItem, item_id)
    if item is None or item.walk_through_id != walk.id:
        raise NotFoundError(f"Checklist item {item_id} not found on this walk-through")
    if update.checked is not None:
        item.checked = update.checked
    if update.notes is not None:
        item.notes = update.notes
    await session.commit()
    await session.refresh(item)
    return item


async def add_issue(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: IssueCreate,
) -> WalkThroughIssue:
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    walk = await _require_walk_through(session, txn.id)
    issue = WalkThroughIssue(
        walk_through_id=walk.id,
        description=request.description,
        severity=request.severity,
    )
    session.add(issue)
    walk.issues_found = True
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="walk_through_issue_reported",
        details={"severity": request.severity.value},
    )
    await session.commit()
    await session.refresh(issue)
    return issue


async def resolve_issue(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    issue_id: int,
) -> WalkThroughIssue:
    txn = await require_transaction(
        session, user, transaction_id, parties=(*BUYER_SIDE, PartyRole.SELLER),
        for_update=True,
    )
    walk = await _require_walk_through(session, txn.id)
    issue = await session.get(WalkThroughIssue, issue_id)
    if issue is None or issue.walk_through_id != walk.id:
        raise NotFoundError(f"Issue {issue_id} not found on this walk-through")
    issue.resolved = True
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="walk_through_issue_resolved",
        details={"issue_id": issue_id},
    )
    await session.commit()
    await session.refresh(issue)
    return issue


async def complete_walk_through(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    notes: str | None = None,
) -> dict:
    """Sign off the walk-through once no major issue is left open."""
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    walk = await _require_walk_through(session, txn.id)
    if walk.status == WalkThroughStatus.COMPLETED:
        raise InvalidStateError(
            "The walk-through is already completed", current_state=walk.status.value,
        )
    open_major = await session.scalar(
        select(func.count(WalkThroughIssue.id)).where(
            WalkThroughIssue.walk_through_id == walk.id,
            WalkThroughIssue.severity == IssueSeverity.MAJOR,
            WalkThroughIssue.resolved.is_(False),
        )
    )
    if open_major:
        raise InvalidStateError(
            f"{open_major} major walk-through issues must be resolved first",
            current_state=walk.status.value,
        )

    walk.status = WalkThroughStatus.COMPLETED
    walk.completed_at = datetime.now(UTC)
    if notes:
        walk.notes = notes
    await upsert_task_by_code(
        session, txn.id, "final_walk_through_completed", updated_by=user.user_id,
    )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="walk_through_completed",
        details={"issues_found": walk.issues_found},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(walk)
    await session.refresh(txn)
    logger.info("Walk-through completed for transaction %s", txn.reference_code)
    announce_gate(txn, gate)
    return await walk_through_view(session, walk)
