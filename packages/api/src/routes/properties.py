# This project was developed with assistance from AI tools.
"""Property listing routes."""

from decimal import Decimal

from db import get_db
from db.enums import PropertyStatus, UserRole
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.property import PropertyCreate, PropertyListResponse, PropertyResponse
from ..services import property as property_service

router = APIRouter()

_ALL_AUTHENTICATED = tuple(UserRole)


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT))],
)
async def create_property(
    body: PropertyCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PropertyResponse:
    """List a property for sale. The caller is the seller unless an admin names one."""
    prop = await property_service.create_property(session, user, body)
    return PropertyResponse.model_validate(prop)


@router.get(
    "",
    response_model=PropertyListResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def search_properties(
    session: AsyncSession = Depends(get_db),
    city: str | None = None,
    state: str | None = Query(default=None, min_length=2, max_length=2),
    min_price: Decimal | None = Query(default=None, ge=0),
    max_price: Decimal | None = Query(default=None, ge=0),
    min_bedrooms: int | None = Query(default=None, ge=0),
    status_filter: PropertyStatus | None = Query(default=PropertyStatus.ACTIVE, alias="status"),
    seller_id: str | None = None,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> PropertyListResponse:
    """Search listings; active listings by default."""
    props, total = await property_service.search_properties(
        session,
        city=city,
        state=state,
        min_price=min_price,
        max_price=max_price,
        min_bedrooms=min_bedrooms,
        status=status_filter,
        seller_id=seller_id,
        offset=offset,
        limit=limit,
    )
    return PropertyListResponse(
        data=[PropertyResponse.model_validate(p) for p in props],
        pagination=Pagination(
            total=total, offset=offset, limit=limit, has_more=(offset + limit) < total,
        ),
    )


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_property(
    property_id: int,
    session: AsyncSession = Depends(get_db),
) -> PropertyResponse:
    prop = await property_service.get_property(session, property_id)
    return PropertyResponse.model_validate(prop)
