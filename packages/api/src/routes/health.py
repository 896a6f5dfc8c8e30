# This project was developed with assistance from AI tools.
"""Liveness and dependency health."""

from db import DatabaseService, get_db_service
from fastapi import APIRouter, Depends

from ..core.config import settings
from ..schemas.health import HealthItem

router = APIRouter()


@router.get("/", response_model=list[HealthItem])
async def health(db_service: DatabaseService = Depends(get_db_service)) -> list[HealthItem]:
    """Report API and database health."""
    db_ok = await db_service.health_check()
    return [
        HealthItem(name="API", status="healthy", message=f"{settings.APP_NAME} is running"),
        HealthItem(
            name="Database",
            status="healthy" if db_ok else "unhealthy",
            message=f"{db_service.dialect_name} connection "
            + ("established" if db_ok else "failed"),
        ),
    ]
