# This project was developed with assistance from AI tools.
"""Final walk-through routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.walk_through import (
    ChecklistItemResponse,
    ChecklistItemUpdate,
    CompleteWalkThroughRequest,
    IssueCreate,
    IssueResponse,
    ScheduleWalkThroughRequest,
    WalkThroughResponse,
)
from ..services import walk_through as walk_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_BUYER_SIDE_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT)


@router.get(
    "/{transaction_id}/walk-through",
    response_model=WalkThroughResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_walk_through(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> WalkThroughResponse:
    view = await walk_service.get_walk_through(session, user, transaction_id)
    return WalkThroughResponse.model_validate(view)


@router.post(
    "/{transaction_id}/walk-through",
    response_model=WalkThroughResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def schedule_walk_through(
    transaction_id: int,
    body: ScheduleWalkThroughRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> WalkThroughResponse:
    """Schedule (or reschedule) the walk-through; the checklist is created once."""
    view = await walk_service.schedule_walk_through(session, user, transaction_id, body)
    return WalkThroughResponse.model_validate(view)


@router.put(
    "/{transaction_id}/walk-through/checklist/{item_id}",
    response_model=ChecklistItemResponse,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def update_checklist_item(
    transaction_id: int,
    item_id: int,
    body: ChecklistItemUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ChecklistItemResponse:
    item = await walk_service.update_checklist_item(session, user, transaction_id, item_id, body)
    return ChecklistItemResponse.model_validate(item)


@router.post(
    "/{transaction_id}/walk-through/issues",
    response_model=IssueResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def add_issue(
    transaction_id: int,
    body: IssueCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> IssueResponse:
    issue = await walk_service.add_issue(session, user, transaction_id, body)
    return IssueResponse.model_validate(issue)


@router.post(
    "/{transaction_id}/walk-through/issues/{issue_id}/resolve",
    response_model=IssueResponse,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def resolve_issue(
    transaction_id: int,
    issue_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> IssueResponse:
    issue = await walk_service.resolve_issue(session, user, transaction_id, issue_id)
    return IssueResponse.model_validate(issue)


@router.post(
    "/{transaction_id}/walk-through/complete",
    response_model=WalkThroughResponse,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def complete_walk_through(
    transaction_id: int,
    body: CompleteWalkThroughRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> WalkThroughResponse:
    """Complete the walk-through; every major issue must be resolved first."""
    view = await walk_service.complete_walk_through(session, user, transaction_id, body.notes)
    return WalkThroughResponse.model_validate(view)
