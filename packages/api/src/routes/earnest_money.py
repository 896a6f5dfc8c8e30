# This project was developed with assistance from AI tools.
"""Earnest money routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.earnest_money import (
    DepositVerificationRequest,
    EarnestMoneyResponse,
    PhoneVerificationRequest,
)
from ..services import earnest_money as earnest_money_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_BUYER_ROLES = (UserRole.ADMIN, UserRole.CLIENT)
_VERIFIER_ROLES = (UserRole.ADMIN, UserRole.TITLE_OFFICER, UserRole.AGENT)


@router.get(
    "/{transaction_id}/earnest-money",
    response_model=EarnestMoneyResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_deposit(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> EarnestMoneyResponse:
    deposit = await earnest_money_service.get_deposit(session, user, transaction_id)
    return EarnestMoneyResponse.model_validate(deposit)


@router.post(
    "/{transaction_id}/earnest-money/phone-verification",
    response_model=EarnestMoneyResponse,
    dependencies=[Depends(require_roles(*_BUYER_ROLES))],
)
async def verify_wire_phone(
    transaction_id: int,
    body: PhoneVerificationRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> EarnestMoneyResponse:
    """Record that the wire instructions were confirmed with the title company by phone."""
    deposit = await earnest_money_service.verify_wire_phone(session, user, transaction_id, body)
    return EarnestMoneyResponse.model_validate(deposit)


@router.post(
    "/{transaction_id}/earnest-money/confirmation",
    response_model=EarnestMoneyResponse,
    dependencies=[Depends(require_roles(*_BUYER_ROLES))],
)
async def upload_confirmation(
    transaction_id: int,
    user: CurrentUser,
    confirmation_number: str = Form(..., alias="confirmationNumber"),
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
) -> EarnestMoneyResponse:
    """Upload the bank's wire confirmation."""
    file_data = await file.read()
    deposit = await earnest_money_service.upload_confirmation(
        session,
        user,
        transaction_id,
        confirmation_number=confirmation_number,
        filename=file.filename or "wire-confirmation.pdf",
        content_type=file.content_type or "",
        file_data=file_data,
    )
    return EarnestMoneyResponse.model_validate(deposit)


@router.post(
    "/{transaction_id}/earnest-money/verify",
    response_model=EarnestMoneyResponse,
    dependencies=[Depends(require_roles(*_VERIFIER_ROLES))],
)
async def verify_deposit(
    transaction_id: int,
    body: DepositVerificationRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> EarnestMoneyResponse:
    deposit = await earnest_money_service.verify_deposit(session, user, transaction_id, body)
    return EarnestMoneyResponse.model_validate(deposit)
