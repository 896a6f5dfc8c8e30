# This project was developed with assistance from AI tools.
"""Closing disclosure, fees, wire instructions and fee discrepancies."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.closing import (
    ClosingFeesRequest,
    ClosingSummaryResponse,
    DiscrepancyCreate,
    DiscrepancyResolve,
    DiscrepancyResponse,
    DisclosureResponse,
    FeeResponse,
    LoanEstimateRequest,
    WireInstructionsRequest,
    WireInstructionsResponse,
)
from ..services import closing as closing_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_LENDING_ROLES = (UserRole.ADMIN, UserRole.LENDER, UserRole.TITLE_OFFICER, UserRole.AGENT)


@router.get(
    "/{transaction_id}/closing",
    response_model=ClosingSummaryResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_closing(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ClosingSummaryResponse:
    """Disclosure, fees, loan estimate, wire instructions and discrepancies in one view."""
    summary = await closing_service.get_closing_summary(session, user, transaction_id)
    return ClosingSummaryResponse.model_validate(summary)


@router.put(
    "/{transaction_id}/closing/loan-estimate",
    response_model=ClosingSummaryResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.LENDER))],
)
async def record_loan_estimate(
    transaction_id: int,
    body: LoanEstimateRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ClosingSummaryResponse:
    await closing_service.record_loan_estimate(session, user, transaction_id, body)
    summary = await closing_service.get_closing_summary(session, user, transaction_id)
    return ClosingSummaryResponse.model_validate(summary)


@router.put(
    "/{transaction_id}/closing/fees",
    response_model=list[FeeResponse],
    dependencies=[Depends(require_roles(*_LENDING_ROLES))],
)
async def set_fees(
    transaction_id: int,
    body: ClosingFeesRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[FeeResponse]:
    """Replace the Closing Disclosure fee list."""
    fees = await closing_service.set_disclosure_fees(session, user, transaction_id, body)
    return [FeeResponse.model_validate(f) for f in fees]


@router.put(
    "/{transaction_id}/closing/wire-instructions",
    response_model=WireInstructionsResponse,
    dependencies=[Depends(require_roles(*_LENDING_ROLES))],
)
async def set_wire_instructions(
    transaction_id: int,
    body: WireInstructionsRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> WireInstructionsResponse:
    wire = await closing_service.set_wire_instructions(session, user, transaction_id, body)
    return WireInstructionsResponse.model_validate(wire)


@router.post(
    "/{transaction_id}/closing/disclosure",
    response_model=DisclosureResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_LENDING_ROLES))],
)
async def upload_disclosure(
    transaction_id: int,
    user: CurrentUser,
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
) -> DisclosureResponse:
    """Upload the Closing Disclosure PDF."""
    file_data = await file.read()
    disclosure = await closing_service.upload_disclosure(
        session,
        user,
        transaction_id,
        filename=file.filename or "closing-disclosure.pdf",
        content_type=file.content_type or "",
        file_data=file_data,
    )
    return DisclosureResponse.model_validate(disclosure)


@router.post(
    "/{transaction_id}/closing/disclosure/acknowledge",
    response_model=DisclosureResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.CLIENT))],
)
async def acknowledge_disclosure(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> DisclosureResponse:
    """Buyer confirms they reviewed the Closing Disclosure."""
    disclosure = await closing_service.acknowledge_disclosure(session, user, transaction_id)
    return DisclosureResponse.model_validate(disclosure)


@router.post(
    "/{transaction_id}/closing/discrepancies",
    response_model=DiscrepancyResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def flag_discrepancy(
    transaction_id: int,
    body: DiscrepancyCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> DiscrepancyResponse:
    """Flag a fee that differs from the Loan Estimate (difference = actual - estimated)."""
    discrepancy = await closing_service.flag_discrepancy(session, user, transaction_id, body)
    return DiscrepancyResponse.model_validate(discrepancy)


@router.post(
    "/{transaction_id}/closing/discrepancies/{discrepancy_id}/resolve",
    response_model=DiscrepancyResponse,
    dependencies=[Depends(require_roles(*_LENDING_ROLES))],
)
async def resolve_discrepancy(
    transaction_id: int,
    discrepancy_id: int,
    body: DiscrepancyResolve,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> DiscrepancyResponse:
    discrepancy = await closing_service.resolve_discrepancy(
        session, user, transaction_id, discrepancy_id, body.resolution_notes,
    )
    return DiscrepancyResponse.model_validate(discrepancy)
