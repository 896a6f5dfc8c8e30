# This project was developed with assistance from AI tools.
"""Property listing service: create, fetch and simple filtered search."""

import logging
from decimal import Decimal

from db import Property, PropertyStatus, UserRole
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.property import PropertyCreate
from .participants import ensure_participant

logger = logging.getLogger(__name__)


async def create_property(
    session: AsyncSession,
    user: UserContext,
    data: PropertyCreate,
) -> Property:
    """List a property; the caller is the seller unless an admin names one."""
    seller_id = user.user_id
    if data.seller_id and data.seller_id != user.user_id:
        if user.role != UserRole.ADMIN:
            raise ValidationError("Only administrators may list a property for another seller")
        seller_id = data.seller_id
    if data.minimum_offer is not None and data.minimum_offer > data.list_price:
        raise ValidationError("Minimum offer cannot exceed the list price")

    prop = Property(
        seller_id=seller_id,
        **data.model_dump(exclude={"seller_id"}),
        status=PropertyStatus.ACTIVE,
    )
    session.add(prop)
    await ensure_participant(session, user)
    await session.commit()
    await session.refresh(prop)
    logger.info("Property %s listed by %s", prop.id, seller_id)
    return prop


async def get_property(session: AsyncSession, property_id: int) -> Property:
    prop = await session.get(Property, property_id)
    if prop is None:
        raise NotFoundError(f"Property {property_id} not found")
    return prop


async def search_properties(
    session: AsyncSession,
    *,
    city: str | None = None,
    state: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    min_bedrooms: int | None = None,
    status: PropertyStatus | None = PropertyStatus.ACTIVE,
    seller_id: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Property], int]:
    """Return (properties, total) matching the given filters, newest first."""
    filters = []
    if city:
        filters.append(func.lower(Property.city) == city.lower())
    if state:
        filters.append(Property.state == state.upper())
    if min_price is not None:
        filters.append(Property.list_price >= min_price)
    if max_price is not None:
        filters.append(Property.list_price <= max_price)
    if min_bedrooms is not None:
        filters.append(Property.bedrooms >= min_bedrooms)
    if status is not None:
        filters.append(Property.status == status)
    if seller_id:
        filters.append(Property.seller_id == seller_id)

    total = (await session.execute(select(func.count(Property.id)).where(*filters))).scalar() or 0
    stmt = (
        select(Property)
        .where(*filters)
        .order_by(Property.created_at.desc(), Property.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), total
