# This project was developed with assistance from AI tools.
"""Offer submission and negotiation routes."""

from db import get_db
from db.enums import UserRole
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.offer import (
    OfferCreate,
    OfferDecisionResponse,
    OfferListResponse,
    OfferRespondRequest,
    OfferResponse,
)
from ..services import offer as offer_service

router = APIRouter()

_OFFER_ROLES = (UserRole.ADMIN, UserRole.CLIENT, UserRole.AGENT)


def _page(offers, total: int, offset: int, limit: int) -> OfferListResponse:
    return OfferListResponse(
        data=[OfferResponse.model_validate(o) for o in offers],
        pagination=Pagination(
            total=total, offset=offset, limit=limit, has_more=(offset + limit) < total,
        ),
    )


@router.post(
    "",
    response_model=OfferResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_OFFER_ROLES))],
)
async def submit_offer(
    body: OfferCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> OfferResponse:
    """Submit an offer on an active listing."""
    offer = await offer_service.submit_offer(session, user, body)
    return OfferResponse.model_validate(offer)


@router.get(
    "/mine",
    response_model=OfferListResponse,
    dependencies=[Depends(require_roles(*_OFFER_ROLES))],
)
async def list_my_offers(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> OfferListResponse:
    """Offers the caller made as a buyer."""
    offers, total = await offer_service.list_my_offers(session, user, offset=offset, limit=limit)
    return _page(offers, total, offset, limit)


@router.get(
    "/property/{property_id}",
    response_model=OfferListResponse,
    dependencies=[Depends(require_roles(*_OFFER_ROLES))],
)
async def list_property_offers(
    property_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> OfferListResponse:
    """Offers on one of the caller's listings."""
    offers, total = await offer_service.list_offers_for_property(
        session, user, property_id, offset=offset, limit=limit,
    )
    return _page(offers, total, offset, limit)


@router.get(
    "/{offer_id}",
    response_model=OfferResponse,
    dependencies=[Depends(require_roles(*_OFFER_ROLES))],
)
async def get_offer(
    offer_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> OfferResponse:
    offer = await offer_service.get_offer(session, user, offer_id)
    return OfferResponse.model_validate(offer)


@router.post(
    "/{offer_id}/respond",
    response_model=OfferDecisionResponse,
    dependencies=[Depends(require_roles(*_OFFER_ROLES))],
)
async def respond_to_offer(
    offer_id: int,
    body: OfferRespondRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> OfferDecisionResponse:
    """Seller accepts, rejects or counters an offer.

    Accepting rejects every other live offer on the property and opens the
    transaction in the same database transaction.
    """
    offer, txn, rejected_ids = await offer_service.respond_to_offer(session, user, offer_id, body)
    return OfferDecisionResponse(
        offer=OfferResponse.model_validate(offer),
        transaction_id=txn.id if txn is not None else None,
        rejected_offer_ids=rejected_ids,
    )


@router.post(
    "/{offer_id}/withdraw",
    response_model=OfferResponse,
    dependencies=[Depends(require_roles(*_OFFER_ROLES))],
)
async def withdraw_offer(
    offer_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> OfferResponse:
    offer = await offer_service.withdraw_offer(session, user, offer_id)
    return OfferResponse.model_validate(offer)
