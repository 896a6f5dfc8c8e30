# This project was developed with assistance from AI tools.
"""Admin endpoints for task catalog seeding."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import require_roles
from ..schemas.admin import SeedResponse
from ..services.seed.seeder import seed_task_templates

router = APIRouter()


@router.post(
    "/seed",
    response_model=SeedResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)
async def seed_catalog(
    session: AsyncSession = Depends(get_db),
) -> SeedResponse:
    """Upsert the task template catalog. Safe to call repeatedly."""
    result = await seed_task_templates(session)
    return SeedResponse(**result)
