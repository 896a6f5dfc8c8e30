# This project was developed with assistance from AI tools.
"""Letter-of-intent document routes."""

from db import get_db
from db.enums import LetterStatus, UserRole
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.loi import LetterCreate, LetterListResponse, LetterResponse, LetterStatusUpdate
from ..services import loi as loi_service

router = APIRouter()

_DOCUMENT_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT)


@router.post(
    "/loi",
    response_model=LetterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_DOCUMENT_ROLES))],
)
async def generate_letter(
    body: LetterCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LetterResponse:
    """Render a draft letter of intent from an offer and store the PDF."""
    letter = await loi_service.generate_from_offer(session, user, body)
    return LetterResponse.model_validate(letter)


@router.get(
    "",
    response_model=LetterListResponse,
    dependencies=[Depends(require_roles(*_DOCUMENT_ROLES))],
)
async def list_letters(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    status_filter: LetterStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> LetterListResponse:
    letters, total = await loi_service.list_documents(
        session, user, status=status_filter, offset=offset, limit=limit,
    )
    return LetterListResponse(
        data=[LetterResponse.model_validate(letter) for letter in letters],
        pagination=Pagination(
            total=total, offset=offset, limit=limit, has_more=(offset + limit) < total,
        ),
    )


@router.get(
    "/{document_id}",
    response_model=LetterResponse,
    dependencies=[Depends(require_roles(*_DOCUMENT_ROLES))],
)
async def get_letter(
    document_id: str,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LetterResponse:
    letter = await loi_service.get_document(session, user, document_id)
    return LetterResponse.model_validate(letter)


@router.post(
    "/{document_id}/send",
    response_model=LetterResponse,
    dependencies=[Depends(require_roles(*_DOCUMENT_ROLES))],
)
async def send_letter(
    document_id: str,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LetterResponse:
    """Send a draft for e-signature; a provider failure leaves it a draft (502)."""
    letter = await loi_service.send_for_signature(session, user, document_id)
    return LetterResponse.model_validate(letter)


@router.post(
    "/{document_id}/viewed",
    response_model=LetterResponse,
    dependencies=[Depends(require_roles(*_DOCUMENT_ROLES))],
)
async def mark_viewed(
    document_id: str,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LetterResponse:
    letter = await loi_service.mark_viewed(session, user, document_id)
    return LetterResponse.model_validate(letter)


@router.post(
    "/{document_id}/status",
    response_model=LetterResponse,
    dependencies=[Depends(require_roles(*_DOCUMENT_ROLES))],
)
async def update_letter_status(
    document_id: str,
    body: LetterStatusUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LetterResponse:
    letter = await loi_service.update_status(session, user, document_id, body)
    return LetterResponse.model_validate(letter)
