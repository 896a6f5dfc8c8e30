# This project was developed with assistance from AI tools.
"""Letters of intent and purchase agreements.

A letter is generated from an offer, rendered to PDF and stored in S3 as a
``draft``. Sending it creates a DocuSign envelope; from then on the Connect
webhook drives its status. When a letter linked to a live transaction is
signed, the ``purchase_agreement_signed`` task is completed and the phase
gate runs.

The JSON sub-documents (parties, terms, signatures, tracking) are always
replaced, never mutated in place, so SQLAlchemy sees the change.
"""

import logging
import secrets
from datetime import UTC, datetime

from db import (
    LetterOfIntent,
    LetterStatus,
    LetterType,
    Offer,
    Participant,
    Property,
    Transaction,
    TransactionStatus,
    UserRole,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ForbiddenError, NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.loi import LetterCreate, LetterStatusUpdate
from .audit import write_activity
from .esign import ENVELOPE_STATUS_MAP, get_esign_client
from .notifications import NotificationEvent, publish
from .participants import ensure_participant
from .pdf import render_letter
from .phase_gate import announce_gate, settle_transaction
from .state_machine import can_transition, require_transition
from .storage import get_storage_service
from .task_ledger import is_task_completed, upsert_task_by_code

logger = logging.getLogger(__name__)

_TITLES = {
    LetterType.LOI: "Letter of Intent to Purchase",
    LetterType.PURCHASE_AGREEMENT: "Residential Purchase Agreement",
}

# Statuses a buyer or seller may set directly; the rest come from e-sign.
_PARTY_STATUSES = frozenset({LetterStatus.ACCEPTED, LetterStatus.REJECTED, LetterStatus.COMPLETED})

_TRACKING_STAMPS = {
    LetterStatus.SENT: ("sent_at",),
    LetterStatus.VIEWED: ("viewed_at",),
    LetterStatus.SIGNED: ("signed_at", "completed_at"),
}


def _new_document_id() -> str:
    return f"LOI-{secrets.token_hex(6).upper()}"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _decimal(value) -> str | None:
    return str(value) if value is not None else None


async def _party(session: AsyncSession, user_id: str) -> dict:
    participant = (
        await session.execute(select(Participant).where(Participant.user_id == user_id))
    ).scalar_one_or_none()
    return {
        "user_id": user_id,
        "name": participant.full_name if participant else "",
        "email": participant.email if participant else "",
    }


def _party_ids(letter: LetterOfIntent) -> set[str]:
    return {
        letter.parties.get(role, {}).get("user_id")
        for role in ("buyer", "seller")
    } - {None}


def _ensure_letter_party(letter: LetterOfIntent, user: UserContext) -> None:
    if user.role == UserRole.ADMIN:
        return
    if user.user_id == letter.created_by or user.user_id in _party_ids(letter):
        return
    raise ForbiddenError(f"You are not a party to document {letter.document_id}")


def _visible_letters(stmt, user: UserContext):
    if user.role == UserRole.ADMIN:
        return stmt
    offer_ids = select(Offer.id).where(
        or_(Offer.buyer_id == user.user_id, Offer.seller_id == user.user_id)
    )
    return stmt.where(
        or_(LetterOfIntent.created_by == user.user_id, LetterOfIntent.offer_id.in_(offer_ids))
    )


async def _load(
    session: AsyncSession, document_id: str, *, for_update: bool = False,
) -> LetterOfIntent:
    stmt = select(LetterOfIntent).where(LetterOfIntent.document_id == document_id)
    if for_update:
        stmt = stmt.with_for_update()
    letter = (await session.execute(stmt)).scalar_one_or_none()
    if letter is None:
        raise NotFoundError(f"Document {document_id} not found")
    return letter


# ---------------------------------------------------------------------------
# Generation and lookup
# ---------------------------------------------------------------------------


async def generate_from_offer(
    session: AsyncSession,
    user: UserContext,
    request: LetterCreate,
) -> LetterOfIntent:
    """Build, render and store a draft letter for an offer."""
    offer = await session.get(Offer, request.offer_id)
    if offer is None:
        raise NotFoundError(f"Offer {request.offer_id} not found")
    if user.role != UserRole.ADMIN and user.user_id not in (offer.buyer_id, offer.seller_id):
        raise ForbiddenError("Only the buyer or seller can draw up a letter for this offer")
    await ensure_participant(session, user)
    prop = await session.get(Property, offer.property_id)

    document_id = _new_document_id()
    parties = {
        "buyer": await _party(session, offer.buyer_id),
        "seller": await _party(session, offer.seller_id),
        "property": {
            "id": offer.property_id,
            "address": (
                f"{prop.street}, {prop.city}, {prop.state} {prop.zip_code}" if prop else ""
            ),
            "county": prop.county if prop else None,
        },
    }
    price = offer.counter_amount if offer.counter_amount is not None else offer.offer_amount
    financial_terms = {
        "purchase_price": _decimal(price),
        "earnest_money": _decimal(offer.earnest_money),
        "financing_type": offer.financing_type.value if offer.financing_type else None,
        "down_payment_percentage": _decimal(offer.down_payment_percentage),
    }
    terms = {
        "inspection_contingency": offer.inspection_contingency,
        "financing_contingency": offer.financing_contingency,
        "appraisal_contingency": offer.appraisal_contingency,
        "sale_contingency": offer.sale_contingency,
        "proposed_closing_date": (
            offer.proposed_closing_date.isoformat() if offer.proposed_closing_date else None
        ),
        "additional_provisions": request.additional_provisions,
        "special_conditions": list(request.special_conditions),
    }

    pdf_bytes = render_letter(
        document_id=document_id,
        title=_TITLES[request.document_type],
        parties=parties,
        financial_terms=financial_terms,
        terms=terms,
    )
    transaction_id = await session.scalar(
        select(Transaction.id).where(Transaction.offer_id == offer.id)
    )
    storage = get_storage_service()
    storage_key = await storage.upload_file(
        pdf_bytes,
        storage.build_object_key(transaction_id, "letters", f"{document_id}.pdf"),
        "application/pdf",
    )

    letter = LetterOfIntent(
        document_id=document_id,
        document_type=request.document_type,
        status=LetterStatus.DRAFT,
        offer_id=offer.id,
        transaction_id=transaction_id,
        created_by=user.user_id,
        parties=parties,
        financial_terms=financial_terms,
        terms=terms,
        signatures={
            "buyer": {"signed": False, "signed_at": None},
            "seller": {"signed": False, "signed_at": None},
        },
        tracking={"created_at": _now_iso(), "view_count": 0},
        storage_key=storage_key,
    )
    session.add(letter)
    if transaction_id is not None:
        write_activity(
            session,
            transaction_id=transaction_id,
            actor_id=user.user_id,
            action="letter_generated",
            details={"document_id": document_id, "type": request.document_type.value},
        )
    await session.commit()
    await session.refresh(letter)
    logger.info("Letter %s generated for offer %s", document_id, offer.id)
    return letter


async def list_documents(
    session: AsyncSession,
    user: UserContext,
    *,
    status: LetterStatus | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[LetterOfIntent], int]:
    count_stmt = _visible_letters(select(func.count(LetterOfIntent.id)), user)
    stmt = _visible_letters(select(LetterOfIntent), user)
    if status is not None:
        count_stmt = count_stmt.where(LetterOfIntent.status == status)
        stmt = stmt.where(LetterOfIntent.status == status)
    total = (await session.execute(count_stmt)).scalar() or 0
    stmt = stmt.order_by(LetterOfIntent.created_at.desc(), LetterOfIntent.id.desc())
    result = await session.execute(stmt.offset(offset).limit(limit))
    return list(result.scalars().all()), total


async def get_document(
    session: AsyncSession, user: UserContext, document_id: str,
) -> LetterOfIntent:
    letter = await _load(session, document_id)
    _ensure_letter_party(letter, user)
    return letter


# ---------------------------------------------------------------------------
# Signature workflow
# ---------------------------------------------------------------------------


async def send_for_signature(
    session: AsyncSession,
    user: UserContext,
    document_id: str,
) -> LetterOfIntent:
    """Create a DocuSign envelope; the letter stays a draft if that fails."""
    letter = await _load(session, document_id, for_update=True)
    _ensure_letter_party(letter, user)
    require_transition(letter.status, LetterStatus.SENT, entity="document")

    signers = {role: letter.parties.get(role, {}) for role in ("buyer", "seller")}
    missing = [role for role, signer in signers.items() if not signer.get("email")]
    if missing:
        raise ValidationError("No email address on file for: " + ", ".join(missing))
    if not letter.storage_key:
        raise ValidationError(f"Document {document_id} has no rendered PDF")

    pdf_bytes = await get_storage_service().download_file(letter.storage_key)
    envelope_id = await get_esign_client().create_envelope(
        document_id=letter.document_id,
        subject=f"Please sign: {_TITLES[letter.document_type]} ({letter.document_id})",
        pdf_bytes=pdf_bytes,
        signers=signers,
    )

    letter.status = LetterStatus.SENT
    letter.envelope_id = envelope_id
    letter.tracking = {**letter.tracking, "sent_at": _now_iso()}
    if letter.transaction_id is not None:
        write_activity(
            session,
            transaction_id=letter.transaction_id,
            actor_id=user.user_id,
            action="letter_sent",
            details={"document_id": letter.document_id, "envelope_id": envelope_id},
        )
    await session.commit()
    await session.refresh(letter)

    publish(
        NotificationEvent(
            event_type="document_sent",
            transaction_id=letter.transaction_id,
            recipient_ids=tuple(sorted(_party_ids(letter))),
            context={
                "document_id": letter.document_id,
                "document_name": f"{_TITLES[letter.document_type]} {letter.document_id}",
            },
        )
    )
    return letter


async def mark_viewed(session: AsyncSession, user: UserContext, document_id: str) -> LetterOfIntent:
    """Count a view; the first view of a sent letter moves it to ``viewed``."""
    letter = await _load(session, document_id, for_update=True)
    _ensure_letter_party(letter, user)
    now = _now_iso()
    tracking = {
        **letter.tracking,
        "view_count": int(letter.tracking.get("view_count", 0)) + 1,
        "viewed_at": now,
    }
    tracking.setdefault("first_viewed_at", now)
    letter.tracking = tracking
    if letter.status == LetterStatus.SENT:
        letter.status = LetterStatus.VIEWED
    await session.commit()
    await session.refresh(letter)
    return letter


async def update_status(
    session: AsyncSession,
    user: UserContext,
    document_id: str,
    request: LetterStatusUpdate,
) -> LetterOfIntent:
    """Accept, reject or complete a letter as one of its parties."""
    if request.status not in _PARTY_STATUSES:
        raise ValidationError(
            f"Status '{request.status.value}' is set by the e-signature provider"
        )
    letter = await _load(session, document_id, for_update=True)
    _ensure_letter_party(letter, user)
    require_transition(letter.status, request.status, entity="document")

    previous = letter.status
    letter.status = request.status
    tracking = {**letter.tracking, f"{request.status.value}_at": _now_iso()}
    if request.notes:
        tracking["notes"] = request.notes
    letter.tracking = tracking
    if letter.transaction_id is not None:
        write_activity(
            session,
            transaction_id=letter.transaction_id,
            actor_id=user.user_id,
            action="letter_status_changed",
            details={
                "document_id": letter.document_id,
                "from": previous.value,
                "to": request.status.value,
            },
        )
    await session.commit()
    await session.refresh(letter)
    return letter


async def handle_webhook(session: AsyncSession, payload: dict) -> LetterOfIntent | None:
    """Apply a DocuSign Connect notification.

    Unknown envelopes, unmapped statuses and out-of-order transitions are
    logged and ignored; recipient signature flags are still applied. A
    replayed completion re-applies the signing step after a phase revert
    reset it.
    """
    envelope_id = payload.get("envelopeId")
    if not envelope_id:
        raise ValidationError("Webhook payload has no envelopeId")
    letter = (
        await session.execute(
            select(LetterOfIntent)
            .where(LetterOfIntent.envelope_id == envelope_id)
            .with_for_update()
        )
    ).scalar_one_or_none()
    if letter is None:
        logger.warning("Webhook for unknown envelope %s ignored", envelope_id)
        return None

    signatures = {role: dict(value) for role, value in letter.signatures.items()}
    for recipient in payload.get("recipientStatuses") or []:
        email = (recipient.get("email") or "").lower()
        for role in ("buyer", "seller"):
            if email and email == (letter.parties.get(role, {}).get("email") or "").lower():
                signatures[role] = {
                    "signed": recipient.get("status") == "completed",
                    "signed_at": recipient.get("signedDateTime"),
                }
    letter.signatures = signatures

    previous = letter.status
    target = ENVELOPE_STATUS_MAP.get(payload.get("status", ""))
    if target is None:
        logger.info("Envelope %s status %r not tracked", envelope_id, payload.get("status"))
    elif target != previous and not can_transition(previous, target):
        logger.warning(
            "Envelope %s: ignoring %s -> %s for %s",
            envelope_id, previous.value, target.value, letter.document_id,
        )
    elif target != previous:
        letter.status = target
        now = _now_iso()
        tracking = dict(letter.tracking)
        for stamp in _TRACKING_STAMPS.get(target, ()):
            tracking[stamp] = now
        letter.tracking = tracking

    txn, gate = None, None
    resigned = (
        target == LetterStatus.SIGNED
        and previous == LetterStatus.SIGNED
        and letter.transaction_id is not None
        and not await is_task_completed(
            session, letter.transaction_id, "purchase_agreement_signed"
        )
    )
    if letter.status == LetterStatus.SIGNED and (previous != LetterStatus.SIGNED or resigned):
        txn = await _signed_transaction(session, letter)
        if txn is not None:
            letter.transaction_id = txn.id
            await upsert_task_by_code(session, txn.id, "purchase_agreement_signed")
            write_activity(
                session,
                transaction_id=txn.id,
                actor_id=None,
                action="purchase_agreement_signed",
                details={"document_id": letter.document_id, "envelope_id": envelope_id},
            )
            gate = await settle_transaction(session, txn)

    await session.commit()
    await session.refresh(letter)
    if previous != letter.status:
        logger.info(
            "Letter %s: %s -> %s via envelope %s",
            letter.document_id, previous.value, letter.status.value, envelope_id,
        )
    if txn is not None and gate is not None:
        await session.refresh(txn)
        announce_gate(txn, gate)
    return letter


async def _signed_transaction(session: AsyncSession, letter: LetterOfIntent) -> Transaction | None:
    """The live transaction a signed letter belongs to, if any."""
    stmt = select(Transaction).with_for_update()
    if letter.transaction_id is not None:
        stmt = stmt.where(Transaction.id == letter.transaction_id)
    elif letter.offer_id is not None:
        stmt = stmt.where(Transaction.offer_id == letter.offer_id)
    else:
        return None
    txn = (await session.execute(stmt)).scalar_one_or_none()
    if txn is None or txn.status in TransactionStatus.terminal_statuses():
        return None
    return txn
