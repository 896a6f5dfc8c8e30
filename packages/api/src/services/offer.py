# This project was developed with assistance from AI tools.
"""Offer negotiation service.

Submission, seller response (accept / reject / counter) and buyer
withdrawal. Acceptance runs as one unit of work under a row lock on the
property: the offer is accepted, every other live offer on the property
(pending or countered) is rejected, the property goes under contract and the
transaction is opened. The partial unique index on accepted offers backs the lock
up; a violation at commit is reported as a conflict.
"""

import logging
from datetime import UTC, datetime
from decimal import Decimal

from db import Offer, OfferStatus, Property, PropertyStatus, Transaction, UserRole
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..schemas.auth import UserContext
from ..schemas.offer import OfferCreate, OfferRespondRequest
from .notifications import NotificationEvent, publish
from .participants import ensure_participant
from .state_machine import require_transition
from .transaction import create_from_offer

logger = logging.getLogger(__name__)

SIBLING_REJECTION_MESSAGE = "Property sold to another buyer"

_ACTION_TARGETS = {
    "accept": OfferStatus.ACCEPTED,
    "reject": OfferStatus.REJECTED,
    "counter": OfferStatus.COUNTERED,
}


def minimum_offer_amount(prop: Property) -> Decimal:
    """The lowest acceptable offer: the seller's minimum or the list-price floor."""
    ratio = Decimal(str(settings.OFFER_MIN_LIST_PRICE_RATIO))
    floor = Decimal(prop.list_price) * ratio
    if prop.minimum_offer is not None:
        floor = max(floor, Decimal(prop.minimum_offer))
    return floor


def _address(prop: Property | None) -> str:
    if prop is None:
        return "the property"
    return f"{prop.street}, {prop.city}"


async def submit_offer(session: AsyncSession, user: UserContext, data: OfferCreate) -> Offer:
    """Record a pending offer after validating it against the listing."""
    prop = await session.get(Property, data.property_id)
    if prop is None or prop.status != PropertyStatus.ACTIVE:
        raise NotFoundError(f"Property {data.property_id} not found or not accepting offers")
    if prop.seller_id == user.user_id:
        raise ForbiddenError("You cannot make an offer on your own property", status_code=400)

    floor = minimum_offer_amount(prop)
    if data.offer_amount < floor:
        raise ValidationError(f"Offer amount must be at least ${floor:,.0f}")

    offer = Offer(
        **data.model_dump(),
        buyer_id=user.user_id,
        seller_id=prop.seller_id,
        status=OfferStatus.PENDING,
    )
    session.add(offer)
    await ensure_participant(session, user)
    await session.commit()
    await session.refresh(offer)
    logger.info(
        "Offer %s submitted on property %s by %s (%s)",
        offer.id, prop.id, user.user_id, offer.offer_amount,
    )

    publish(
        NotificationEvent(
            event_type="offer_submitted",
            transaction_id=None,
            recipient_ids=(prop.seller_id,),
            context={"address": _address(prop), "amount": f"{offer.offer_amount:,.2f}"},
        )
    )
    return offer


async def _load_offer(session: AsyncSession, offer_id: int) -> Offer:
    offer = await session.get(Offer, offer_id)
    if offer is None:
        raise NotFoundError(f"Offer {offer_id} not found")
    return offer


async def respond_to_offer(
    session: AsyncSession,
    user: UserContext,
    offer_id: int,
    request: OfferRespondRequest,
) -> tuple[Offer, Transaction | None, list[int]]:
    """Apply the seller's decision.

    Returns (offer, transaction opened by an acceptance or None, ids of the
    sibling offers rejected by the acceptance).
    """
    action = (request.action or "").strip().lower()
    target = _ACTION_TARGETS.get(action)
    if target is None:
        raise ValidationError(
            f"Invalid action '{request.action}'. Expected one of: accept, reject, counter"
        )
    if action == "counter" and (request.counter_amount is None or request.counter_amount <= 0):
        raise ValidationError("A counter offer requires a counter amount greater than zero")

    offer = await _load_offer(session, offer_id)
    if offer.seller_id != user.user_id:
        logger.warning("Offer %s response denied for non-seller %s", offer_id, user.user_id)
        raise ForbiddenError("Only the seller can respond to this offer")
    require_transition(offer.status, target, entity="offer")

    if target == OfferStatus.ACCEPTED:
        return await _accept(session, user, offer)

    now = datetime.now(UTC)
    offer.status = target
    offer.responded_at = now
    if request.seller_response:
        offer.seller_response = request.seller_response
    if target == OfferStatus.COUNTERED:
        offer.counter_amount = request.counter_amount
    await session.commit()
    await session.refresh(offer)
    logger.info("Offer %s %s by seller %s", offer.id, target.value, user.user_id)

    prop = await session.get(Property, offer.property_id)
    publish(
        NotificationEvent(
            event_type=f"offer_{target.value}",
            transaction_id=None,
            recipient_ids=(offer.buyer_id,),
            context={
                "address": _address(prop),
                "counter_amount": f"{offer.counter_amount:,.2f}" if offer.counter_amount else "",
                "seller_response": offer.seller_response or "",
            },
        )
    )
    return offer, None, []


async def _accept(
    session: AsyncSession,
    user: UserContext,
    offer: Offer,
) -> tuple[Offer, Transaction, list[int]]:
    prop = (
        await session.execute(
            select(Property).where(Property.id == offer.property_id).with_for_update()
        )
    ).scalar_one_or_none()
    if prop is None:
        raise NotFoundError(f"Property {offer.property_id} not found")

    # The status checked before the property lock may be stale; re-read it
    # under the lock so a concurrent withdraw or accept is seen.
    offer = (
        await session.execute(
            select(Offer)
            .where(Offer.id == offer.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    require_transition(offer.status, OfferStatus.ACCEPTED, entity="offer")

    already_accepted = await session.scalar(
        select(func.count(Offer.id)).where(
            Offer.property_id == prop.id,
            Offer.status == OfferStatus.ACCEPTED,
            Offer.id != offer.id,
        )
    )
    if already_accepted:
        raise ConflictError(f"Property {prop.id} already has an accepted offer")
    if prop.status != PropertyStatus.ACTIVE:
        raise InvalidStateError(
            f"Property {prop.id} is {prop.status.value}",
            current_state=prop.status.value,
        )

    price = offer.offer_amount
    if offer.status == OfferStatus.COUNTERED and offer.counter_amount:
        price = offer.counter_amount

    now = datetime.now(UTC)
    offer.status = OfferStatus.ACCEPTED
    offer.accepted_at = now
    offer.responded_at = now

    siblings = (
        await session.execute(
            select(Offer)
            .where(
                Offer.property_id == prop.id,
                Offer.id != offer.id,
                Offer.status.in_(OfferStatus.live_statuses()),
            )
            .with_for_update()
        )
    ).scalars().all()
    for sibling in siblings:
        sibling.status = OfferStatus.REJECTED
        sibling.seller_response = SIBLING_REJECTION_MESSAGE
        sibling.responded_at = now
    rejected = [(s.id, s.buyer_id) for s in siblings]

    prop.status = PropertyStatus.UNDER_CONTRACT
    try:
        txn = await create_from_offer(session, offer, price=price, actor_id=user.user_id)
        await ensure_participant(session, user)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("Concurrent acceptance on property %s: %s", prop.id, exc.orig)
        raise ConflictError(f"Property {prop.id} already has an accepted offer") from exc

    await session.refresh(offer)
    await session.refresh(txn)
    logger.info(
        "Offer %s accepted; %d sibling offers rejected; transaction %s opened",
        offer.id, len(rejected), txn.reference_code,
    )

    address = _address(prop)
    publish(
        NotificationEvent(
            event_type="offer_accepted",
            transaction_id=txn.id,
            recipient_ids=(offer.buyer_id,),
            context={
                "address": address,
                "amount": f"{price:,.2f}",
                "reference_code": txn.reference_code,
            },
        )
    )
    if rejected:
        publish(
            NotificationEvent(
                event_type="offer_rejected",
                transaction_id=None,
                recipient_ids=tuple({buyer_id for _, buyer_id in rejected}),
                context={"address": address, "seller_response": SIBLING_REJECTION_MESSAGE},
            )
        )
    return offer, txn, [offer_id for offer_id, _ in rejected]


async def withdraw_offer(session: AsyncSession, user: UserContext, offer_id: int) -> Offer:
    """Buyer withdraws a pending or countered offer."""
    offer = await _load_offer(session, offer_id)
    if offer.buyer_id != user.user_id:
        raise ForbiddenError("Only the buyer who made this offer can withdraw it")
    require_transition(offer.status, OfferStatus.WITHDRAWN, entity="offer")

    offer.status = OfferStatus.WITHDRAWN
    offer.withdrawn_at = datetime.now(UTC)
    await session.commit()
    await session.refresh(offer)
    logger.info("Offer %s withdrawn by %s", offer.id, user.user_id)

    prop = await session.get(Property, offer.property_id)
    publish(
        NotificationEvent(
            event_type="offer_withdrawn",
            transaction_id=None,
            recipient_ids=(offer.seller_id,),
            context={"address": _address(prop), "amount": f"{offer.offer_amount:,.2f}"},
        )
    )
    return offer


async def get_offer(session: AsyncSession, user: UserContext, offer_id: int) -> Offer:
    """Return an offer to its buyer, its seller or an admin."""
    offer = await _load_offer(session, offer_id)
    if user.role != UserRole.ADMIN and user.user_id not in (offer.buyer_id, offer.seller_id):
        raise ForbiddenError("Only the buyer or seller may view this offer")
    return offer


async def list_offers_for_property(
    session: AsyncSession,
    user: UserContext,
    property_id: int,
    *,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Offer], int]:
    """Offers on a property, visible to its seller (and admins)."""
    prop = await session.get(Property, property_id)
    if prop is None:
        raise NotFoundError(f"Property {property_id} not found")
    if user.role != UserRole.ADMIN and prop.seller_id != user.user_id:
        raise ForbiddenError("Only the seller can list offers on this property")
    return await _list_offers(session, Offer.property_id == property_id, offset, limit)


async def list_my_offers(
    session: AsyncSession,
    user: UserContext,
    *,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Offer], int]:
    return await _list_offers(session, Offer.buyer_id == user.user_id, offset, limit)


async def _list_offers(session: AsyncSession, condition, offset: int, limit: int):
    total = (await session.execute(select(func.count(Offer.id)).where(condition))).scalar() or 0
    stmt = (
        select(Offer)
        .where(condition)
        .order_by(Offer.submitted_at.desc(), Offer.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), total
