# This project was developed with assistance from AI tools.
"""Loan funding, disbursement and deed recording routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.funding import (
    DisbursementCreate,
    DisbursementResponse,
    FundingDetailResponse,
    FundingResponse,
    FundingUpdate,
    RecordingComplete,
    RecordingInitiate,
)
from ..services import funding as funding_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_FUNDING_ROLES = (UserRole.ADMIN, UserRole.LENDER, UserRole.TITLE_OFFICER)
_RECORDING_ROLES = (UserRole.ADMIN, UserRole.TITLE_OFFICER)


@router.get(
    "/{transaction_id}/funding",
    response_model=FundingDetailResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_funding(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> FundingDetailResponse:
    detail = await funding_service.get_funding(session, user, transaction_id)
    return FundingDetailResponse.model_validate(detail)


@router.put(
    "/{transaction_id}/funding",
    response_model=FundingResponse,
    dependencies=[Depends(require_roles(*_FUNDING_ROLES))],
)
async def update_funding(
    transaction_id: int,
    body: FundingUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> FundingResponse:
    """Update funding status and delivery flags; omitted fields are kept."""
    funding = await funding_service.update_funding(session, user, transaction_id, body)
    return FundingResponse.model_validate(funding)


@router.post(
    "/{transaction_id}/funding/disbursements",
    response_model=DisbursementResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_FUNDING_ROLES))],
)
async def add_disbursement(
    transaction_id: int,
    body: DisbursementCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> DisbursementResponse:
    disbursement = await funding_service.add_disbursement(session, user, transaction_id, body)
    return DisbursementResponse.model_validate(disbursement)


@router.post(
    "/{transaction_id}/funding/recording",
    response_model=FundingResponse,
    dependencies=[Depends(require_roles(*_RECORDING_ROLES))],
)
async def initiate_recording(
    transaction_id: int,
    body: RecordingInitiate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> FundingResponse:
    """Submit the deed to the county recorder."""
    funding = await funding_service.initiate_recording(
        session, user, transaction_id, body.county_reference,
    )
    return FundingResponse.model_validate(funding)


@router.put(
    "/{transaction_id}/funding/recording",
    response_model=FundingResponse,
    dependencies=[Depends(require_roles(*_RECORDING_ROLES))],
)
async def complete_recording(
    transaction_id: int,
    body: RecordingComplete,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> FundingResponse:
    """Record the county's decision: ``completed`` or ``rejected``."""
    funding = await funding_service.complete_recording(session, user, transaction_id, body)
    return FundingResponse.model_validate(funding)
