# This project was developed with assistance from AI tools.
"""Moving preparation routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.moving import (
    AddressChangeUpdate,
    MoversUpdate,
    MovingResponse,
    PossessionUpdate,
    UtilityTransferCreate,
    UtilityTransferResponse,
)
from ..services import moving as moving_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_BUYER_SIDE_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT)


@router.get(
    "/{transaction_id}/moving",
    response_model=MovingResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_moving(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> MovingResponse:
    view = await moving_service.get_moving(session, user, transaction_id)
    return MovingResponse.model_validate(view)


@router.put(
    "/{transaction_id}/moving/possession",
    response_model=MovingResponse,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def set_possession(
    transaction_id: int,
    body: PossessionUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> MovingResponse:
    view = await moving_service.set_possession(session, user, transaction_id, body)
    return MovingResponse.model_validate(view)


@router.put(
    "/{transaction_id}/moving/movers",
    response_model=MovingResponse,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def schedule_movers(
    transaction_id: int,
    body: MoversUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> MovingResponse:
    view = await moving_service.schedule_movers(session, user, transaction_id, body)
    return MovingResponse.model_validate(view)


@router.put(
    "/{transaction_id}/moving/address-change",
    response_model=MovingResponse,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def file_address_change(
    transaction_id: int,
    body: AddressChangeUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> MovingResponse:
    view = await moving_service.file_address_change(session, user, transaction_id, body)
    return MovingResponse.model_validate(view)


@router.post(
    "/{transaction_id}/moving/utilities",
    response_model=UtilityTransferResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def add_utility_transfer(
    transaction_id: int,
    body: UtilityTransferCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> UtilityTransferResponse:
    transfer = await moving_service.add_utility_transfer(session, user, transaction_id, body)
    return UtilityTransferResponse.model_validate(transfer)
