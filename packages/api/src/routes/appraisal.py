# This project was developed with assistance from AI tools.
"""Appraisal routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.appraisal import (
    AppraisalCompleteRequest,
    AppraisalOrderRequest,
    AppraisalResolveRequest,
    AppraisalResponse,
    AppraisalScheduleRequest,
)
from ..services import appraisal as appraisal_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_LENDING_ROLES = (UserRole.ADMIN, UserRole.LENDER, UserRole.AGENT)
_PARTY_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT)


@router.get(
    "/{transaction_id}/appraisal",
    response_model=AppraisalResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_appraisal(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AppraisalResponse:
    appraisal = await appraisal_service.get_appraisal(session, user, transaction_id)
    return AppraisalResponse.model_validate(appraisal)


@router.post(
    "/{transaction_id}/appraisal",
    response_model=AppraisalResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_LENDING_ROLES))],
)
async def order_appraisal(
    transaction_id: int,
    body: AppraisalOrderRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AppraisalResponse:
    appraisal = await appraisal_service.order_appraisal(session, user, transaction_id, body)
    return AppraisalResponse.model_validate(appraisal)


@router.post(
    "/{transaction_id}/appraisal/schedule",
    response_model=AppraisalResponse,
    dependencies=[Depends(require_roles(*_LENDING_ROLES))],
)
async def schedule_appraisal(
    transaction_id: int,
    body: AppraisalScheduleRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AppraisalResponse:
    appraisal = await appraisal_service.schedule_appraisal(session, user, transaction_id, body)
    return AppraisalResponse.model_validate(appraisal)


@router.post(
    "/{transaction_id}/appraisal/complete",
    response_model=AppraisalResponse,
    dependencies=[Depends(require_roles(*_LENDING_ROLES))],
)
async def complete_appraisal(
    transaction_id: int,
    body: AppraisalCompleteRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AppraisalResponse:
    """Record the appraised value; a value below the price is a low appraisal."""
    appraisal = await appraisal_service.complete_appraisal(session, user, transaction_id, body)
    return AppraisalResponse.model_validate(appraisal)


@router.post(
    "/{transaction_id}/appraisal/resolve",
    response_model=AppraisalResponse,
    dependencies=[Depends(require_roles(*_PARTY_ROLES))],
)
async def resolve_low_appraisal(
    transaction_id: int,
    body: AppraisalResolveRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AppraisalResponse:
    appraisal = await appraisal_service.resolve_low_appraisal(session, user, transaction_id, body)
    return AppraisalResponse.model_validate(appraisal)
