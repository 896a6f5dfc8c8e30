# This project was developed with assistance from AI tools.
"""Closing-table signing routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.signing import (
    ConfirmFundsRequest,
    PrepareSigningRequest,
    SigningDocumentListResponse,
    SigningDocumentResponse,
)
from ..schemas.transaction import TransactionResponse
from ..services import signing as signing_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_CLOSING_ROLES = (UserRole.ADMIN, UserRole.AGENT, UserRole.TITLE_OFFICER, UserRole.LENDER)


def _document_list(txn, docs) -> SigningDocumentListResponse:
    return SigningDocumentListResponse(
        data=[SigningDocumentResponse.model_validate(d) for d in docs],
        all_signed=bool(docs) and all(d.signed for d in docs),
        funds_confirmed=txn.funds_confirmed,
    )


@router.get(
    "/{transaction_id}/signing/documents",
    response_model=SigningDocumentListResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def list_signing_documents(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> SigningDocumentListResponse:
    txn, docs = await signing_service.list_documents(session, user, transaction_id)
    return _document_list(txn, docs)


@router.post(
    "/{transaction_id}/signing/documents",
    response_model=SigningDocumentListResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_CLOSING_ROLES))],
)
async def prepare_signing_documents(
    transaction_id: int,
    body: PrepareSigningRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> SigningDocumentListResponse:
    """Add documents to the package; an empty list creates the standard package."""
    txn, docs = await signing_service.prepare_documents(session, user, transaction_id, body)
    return _document_list(txn, docs)


@router.post(
    "/{transaction_id}/signing/documents/{document_id}/sign",
    response_model=SigningDocumentResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.CLIENT))],
)
async def sign_document(
    transaction_id: int,
    document_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> SigningDocumentResponse:
    doc = await signing_service.sign_document(session, user, transaction_id, document_id)
    return SigningDocumentResponse.model_validate(doc)


@router.post(
    "/{transaction_id}/signing/confirm-funds",
    response_model=TransactionResponse,
    dependencies=[Depends(require_roles(*_CLOSING_ROLES))],
)
async def confirm_funds(
    transaction_id: int,
    body: ConfirmFundsRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransactionResponse:
    txn = await signing_service.confirm_funds(session, user, transaction_id, body)
    return TransactionResponse.model_validate(txn)


@router.post(
    "/{transaction_id}/signing/complete",
    response_model=TransactionResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.AGENT, UserRole.TITLE_OFFICER))],
)
async def complete_signing(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransactionResponse:
    """Close out signing once every document is signed and funds are confirmed."""
    txn = await signing_service.complete_signing(session, user, transaction_id)
    return TransactionResponse.model_validate(txn)
