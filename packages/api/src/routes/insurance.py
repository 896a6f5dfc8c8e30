# This project was developed with assistance from AI tools.
"""Homeowner's insurance routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.insurance import PolicyPurchaseRequest, PolicyResponse
from ..services import insurance as insurance_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_BUYER_SIDE_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT)


@router.get(
    "/{transaction_id}/insurance",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_policy(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    policy = await insurance_service.get_policy(session, user, transaction_id)
    return PolicyResponse.model_validate(policy)


@router.post(
    "/{transaction_id}/insurance",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def purchase_policy(
    transaction_id: int,
    body: PolicyPurchaseRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Bind a homeowner's policy for the transaction."""
    policy = await insurance_service.purchase_policy(session, user, transaction_id, body)
    return PolicyResponse.model_validate(policy)


@router.post(
    "/{transaction_id}/insurance/proof",
    response_model=PolicyResponse,
    dependencies=[Depends(require_roles(*_BUYER_SIDE_ROLES))],
)
async def upload_proof(
    transaction_id: int,
    user: CurrentUser,
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
) -> PolicyResponse:
    """Attach proof of insurance (PDF or image)."""
    file_data = await file.read()
    policy = await insurance_service.upload_proof(
        session,
        user,
        transaction_id,
        filename=file.filename or "insurance-proof.pdf",
        content_type=file.content_type or "",
        file_data=file_data,
    )
    return PolicyResponse.model_validate(policy)
