# This project was developed with assistance from AI tools.
"""Closing appointment routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.closing_appointment import (
    AppointmentConfirmation,
    AppointmentRequest,
    AppointmentResponse,
)
from ..services import closing_appointment as appointment_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)
_SCHEDULER_ROLES = (UserRole.ADMIN, UserRole.AGENT, UserRole.TITLE_OFFICER)


@router.get(
    "/{transaction_id}/closing-appointment",
    response_model=AppointmentResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_appointment(
    transaction_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AppointmentResponse:
    appointment = await appointment_service.get_appointment(session, user, transaction_id)
    return AppointmentResponse.model_validate(appointment)


@router.put(
    "/{transaction_id}/closing-appointment",
    response_model=AppointmentResponse,
    dependencies=[Depends(require_roles(*_SCHEDULER_ROLES))],
)
async def schedule_appointment(
    transaction_id: int,
    body: AppointmentRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AppointmentResponse:
    """Schedule or move the closing appointment."""
    appointment = await appointment_service.schedule_appointment(
        session, user, transaction_id, body,
    )
    return AppointmentResponse.model_validate(appointment)


@router.post(
    "/{transaction_id}/closing-appointment/confirm",
    response_model=AppointmentResponse,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.CLIENT))],
)
async def confirm_appointment(
    transaction_id: int,
    body: AppointmentConfirmation,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> AppointmentResponse:
    appointment = await appointment_service.confirm_appointment(
        session, user, transaction_id, body,
    )
    return AppointmentResponse.model_validate(appointment)
