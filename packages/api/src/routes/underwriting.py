# This project was developed with assistance from AI tools.
"""Underwriting file, conditions, documents and the clear-to-close check."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.underwriting import (
    ClearToCloseResponse,
    ConditionCreate,
    ConditionResponse,
    OpenUnderwritingRequest,
    SubmitDocumentsRequest,
    SubmitDocumentsResponse,
    UnderwritingDocumentResponse,
    UnderwritingResponse,
    UnderwritingStatusResponse,
    WaiveConditionRequest,
)
from ..services import underwriting as uw_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_LENDER_ROLES = (UserRole.ADMIN, UserRole.LENDER)
_SUBMITTER_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT, UserRole.LENDER)


@router.post(
    "/{transaction_id}/underwriting",
    response_model=UnderwritingStatusResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_SUBMITTER_ROLES))],
)
async def open_underwriting(
    transaction_id: int,
    body: OpenUnderwritingRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> UnderwritingStatusResponse:
    """Open the underwriting file; status starts at ``submitted``."""
    uw = await uw_service.open_underwriting(session, user, transaction_id, body)
    return UnderwritingStatusResponse.model_validate(uw)


@router.get(
    "/{transaction_id}/underwriting",
    response_model=UnderwritingResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_underwriting(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> UnderwritingResponse:
    uw, conditions, documents = await uw_service.get_underwriting(session, user, transaction_id)
    return UnderwritingResponse(
        status=UnderwritingStatusResponse.model_validate(uw),
        conditions=[ConditionResponse.model_validate(c) for c in conditions],
        documents=[UnderwritingDocumentResponse.model_validate(d) for d in documents],
    )


@router.post(
    "/{transaction_id}/underwriting/conditions",
    response_model=ConditionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_LENDER_ROLES))],
)
async def add_condition(
    transaction_id: int,
    body: ConditionCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ConditionResponse:
    """Issue a condition; reopens the gate at ``conditions_requested``."""
    condition = await uw_service.add_condition(session, user, transaction_id, body)
    return ConditionResponse.model_validate(condition)


@router.post(
    "/{transaction_id}/underwriting/conditions/{condition_id}/waive",
    response_model=ConditionResponse,
    dependencies=[Depends(require_roles(*_LENDER_ROLES))],
)
async def waive_condition(
    transaction_id: int,
    condition_id: int,
    body: WaiveConditionRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ConditionResponse:
    condition = await uw_service.waive_condition(
        session, user, transaction_id, condition_id, body.reason,
    )
    return ConditionResponse.model_validate(condition)


@router.post(
    "/{transaction_id}/underwriting/documents",
    response_model=SubmitDocumentsResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_SUBMITTER_ROLES))],
)
async def submit_documents(
    transaction_id: int,
    body: SubmitDocumentsRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> SubmitDocumentsResponse:
    """Record documents against outstanding conditions."""
    uw, documents, satisfied = await uw_service.submit_documents(
        session, user, transaction_id, body,
    )
    return SubmitDocumentsResponse(
        status=UnderwritingStatusResponse.model_validate(uw),
        documents=[UnderwritingDocumentResponse.model_validate(d) for d in documents],
        satisfied_condition_ids=satisfied,
    )


@router.post(
    "/{transaction_id}/underwriting/clear-to-close",
    response_model=ClearToCloseResponse,
    dependencies=[Depends(require_roles(*_SUBMITTER_ROLES))],
)
async def check_clear_to_close(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ClearToCloseResponse:
    """Run the underwriting gate once and report the outcome."""
    result = await uw_service.check_clear_to_close(session, user, transaction_id)
    return ClearToCloseResponse(**result)
