# This project was developed with assistance from AI tools.
"""Home inspection and repair request routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.inspection import (
    InspectionCreate,
    InspectionResponse,
    RepairRequestCreate,
    RepairRequestResponse,
    RepairResponseRequest,
)
from ..services import inspection as inspection_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_PARTY_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT)


@router.get(
    "/{transaction_id}/inspections",
    response_model=list[InspectionResponse],
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def list_inspections(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[InspectionResponse]:
    views = await inspection_service.list_inspections(session, user, transaction_id)
    return [InspectionResponse.model_validate(v) for v in views]


@router.post(
    "/{transaction_id}/inspections",
    response_model=InspectionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_PARTY_ROLES))],
)
async def schedule_inspection(
    transaction_id: int,
    body: InspectionCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> InspectionResponse:
    view = await inspection_service.schedule_inspection(session, user, transaction_id, body)
    return InspectionResponse.model_validate(view)


@router.post(
    "/{transaction_id}/inspections/{inspection_id}/report",
    response_model=InspectionResponse,
    dependencies=[Depends(require_roles(*_PARTY_ROLES))],
)
async def upload_report(
    transaction_id: int,
    inspection_id: int,
    user: CurrentUser,
    summary: str | None = Form(None),
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
) -> InspectionResponse:
    """Attach the inspector's report; this completes the inspection."""
    file_data = await file.read()
    view = await inspection_service.upload_report(
        session,
        user,
        transaction_id,
        inspection_id,
        summary=summary,
        filename=file.filename or "inspection-report.pdf",
        content_type=file.content_type or "",
        file_data=file_data,
    )
    return InspectionResponse.model_validate(view)


@router.post(
    "/{transaction_id}/inspections/{inspection_id}/repair-request",
    response_model=RepairRequestResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.CLIENT))],
)
async def create_repair_request(
    transaction_id: int,
    inspection_id: int,
    body: RepairRequestCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> RepairRequestResponse:
    view = await inspection_service.create_repair_request(
        session, user, transaction_id, inspection_id, body,
    )
    return RepairRequestResponse.model_validate(view)


@router.post(
    "/{transaction_id}/repair-requests/{request_id}/respond",
    response_model=RepairRequestResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.CLIENT))],
)
async def respond_to_repair_request(
    transaction_id: int,
    request_id: int,
    body: RepairResponseRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> RepairRequestResponse:
    """Seller accepts, rejects or negotiates the requested repairs."""
    view = await inspection_service.respond_to_repair_request(
        session, user, transaction_id, request_id, body,
    )
    return RepairRequestResponse.model_validate(view)


@router.post(
    "/{transaction_id}/repair-requests/{request_id}/complete",
    response_model=RepairRequestResponse,
    dependencies=[Depends(require_roles(*_PARTY_ROLES))],
)
async def complete_repairs(
    transaction_id: int,
    request_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> RepairRequestResponse:
    view = await inspection_service.complete_repairs(session, user, transaction_id, request_id)
    return RepairRequestResponse.model_validate(view)
