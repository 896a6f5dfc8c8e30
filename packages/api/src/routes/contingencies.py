# This project was developed with assistance from AI tools.
"""Contract contingency routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.contingency import ContingencyResponse, ContingencyUpdate
from ..services import contingency as contingency_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_BUYER_SIDE_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT)


@router.get(
    "/{transaction_id}/contingencies",
    response_model=list[ContingencyResponse],
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def list_contingencies(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[ContingencyResponse]:
    rows = await contingency_service.list_contingencies(session, user, transaction_id)
    return [ContingencyResponse.model_validate(c) for c in rows]


@router.patch(
    "/{transaction_id}/contingencies/{contingency_id}",
    response_model=ContingencyResponse,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def update_contingency(
    transaction_id: int,
    contingency_id: int,
    body: ContingencyUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ContingencyResponse:
    """Move a deadline, or mark a contingency satisfied or waived."""
    contingency = await contingency_service.update_contingency(
        session, user, transaction_id, contingency_id, body,
    )
    return ContingencyResponse.model_validate(contingency)
