# This project was developed with assistance from AI tools.
"""Closing-table signing: document package, signatures and funds confirmation."""

import logging
from datetime import UTC, datetime

from db import (
    FundMethod,
    PartyRole,
    SignerRole,
    SigningDocument,
    Transaction,
    TransactionPhase,
)
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.signing import ConfirmFundsRequest, PrepareSigningRequest
from .audit import write_activity
from .notifications import NotificationEvent, publish
from .phase_gate import announce_gate, settle_transaction
from .task_ledger import is_task_completed, reopen_task, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

CLOSING_PARTIES = (PartyRole.AGENT, PartyRole.TITLE_OFFICER, PartyRole.LENDER)

STANDARD_PACKAGE = (
    ("Closing Disclosure", SignerRole.BUYER),
    ("Promissory Note", SignerRole.BUYER),
    ("Deed of Trust", SignerRole.BUYER),
    ("Buyer Settlement Statement", SignerRole.BUYER),
    ("Warranty Deed", SignerRole.SELLER),
    ("Seller Settlement Statement", SignerRole.SELLER),
)

_SIGNER_COLUMNS = {
    SignerRole.BUYER: "buyer_id",
    SignerRole.SELLER: "seller_id",
}


async def _documents(session: AsyncSession, transaction_id: int) -> list[SigningDocument]:
    result = await session.execute(
        select(SigningDocument)
        .where(SigningDocument.transaction_id == transaction_id)
        .order_by(SigningDocument.document_order, SigningDocument.id)
    )
    return list(result.scalars().all())


async def list_documents(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
) -> tuple[Transaction, list[SigningDocument]]:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    return txn, await _documents(session, txn.id)


async def prepare_documents(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: PrepareSigningRequest,
) -> tuple[Transaction, list[SigningDocument]]:
    """Add documents to the signing package."""
    txn = await require_transaction(
        session, user, transaction_id, parties=CLOSING_PARTIES, for_update=True,
    )
    if txn.phase.position > TransactionPhase.SIGNING.position:
        raise InvalidStateError(
            f"Signing is finished for transaction {txn.reference_code}",
            current_state=txn.phase.value,
        )

    existing = await _documents(session, txn.id)
    next_order = max((d.document_order for d in existing), default=0) + 1
    specs = [(d.name, d.signer_role, d.document_order) for d in request.documents]
    if not specs:
        if existing:
            raise ValidationError("The signing package already exists; list the documents to add")
        specs = [(name, role, None) for name, role in STANDARD_PACKAGE]

    for offset, (name, role, order) in enumerate(specs):
        session.add(
            SigningDocument(
                transaction_id=txn.id,
                name=name,
                signer_role=role,
                document_order=order if order is not None else next_order + offset,
            )
        )
    await reopen_task(session, txn, "closing_documents_signed", updated_by=user.user_id)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="signing_documents_prepared",
        details={"documents": [name for name, _, _ in specs]},
    )
    await session.commit()
    return txn, await _documents(session, txn.id)


async def sign_document(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    document_id: int,
) -> SigningDocument:
    """Sign one document; only the party named by its signer role may sign."""
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.BUYER, PartyRole.SELLER),
        for_update=True,
    )
    doc = await session.get(SigningDocument, document_id)
    if doc is None or doc.transaction_id != txn.id:
        raise NotFoundError(f"Signing document {document_id} not found on this transaction")
    if getattr(txn, _SIGNER_COLUMNS[doc.signer_role]) != user.user_id:
        raise ForbiddenError(f"'{doc.name}' must be signed by the {doc.signer_role.value}")
    if doc.signed:
        raise InvalidStateError(f"'{doc.name}' is already signed", current_state="signed")

    doc.signed = True
    doc.signed_at = datetime.now(UTC)
    doc.signed_by = user.user_id
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="document_signed",
        details={"document_id": doc.id, "name": doc.name},
    )
    await session.commit()
    await session.refresh(doc)
    return doc


async def confirm_funds(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: ConfirmFundsRequest,
) -> Transaction:
    """Record receipt of the buyer's closing funds.

    Confirming again is refused unless a phase revert reopened the step.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=CLOSING_PARTIES, for_update=True,
    )
    if request.method == FundMethod.CASHIERS_CHECK and not request.check_number:
        raise ValidationError("A cashier's check requires its check number")
    if txn.funds_confirmed and await is_task_completed(session, txn.id, "funds_confirmed"):
        raise InvalidStateError("Funds are already confirmed", current_state="funds_confirmed")

    txn.funds_confirmed = True
    txn.fund_method = request.method
    txn.funds_check_number = request.check_number
    txn.funds_confirmed_at = datetime.now(UTC)
    await upsert_task_by_code(session, txn.id, "funds_confirmed", updated_by=user.user_id)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="funds_confirmed",
        details={"method": request.method.value},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(txn)
    announce_gate(txn, gate)
    return txn


async def complete_signing(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
) -> Transaction:
    """Close out signing once every document is signed and funds are in."""
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.AGENT, PartyRole.TITLE_OFFICER),
        for_update=True,
    )
    total, unsigned = (
        await session.execute(
            select(
                func.count(SigningDocument.id),
                func.coalesce(
                    func.sum(case((SigningDocument.signed.is_(False), 1), else_=0)), 0,
                ),
            ).where(SigningDocument.transaction_id == txn.id)
        )
    ).one()
    if not total:
        raise InvalidStateError("No signing documents have been prepared", current_state="empty")
    if unsigned:
        raise InvalidStateError(
            f"{unsigned} of {total} documents are still unsigned", current_state="unsigned",
        )
    if not txn.funds_confirmed:
        raise InvalidStateError("Closing funds have not been confirmed", current_state="unfunded")

    await upsert_task_by_code(session, txn.id, "closing_documents_signed", updated_by=user.user_id)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="signing_completed",
        details={"documents": total},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(txn)
    logger.info("Signing completed for transaction %s", txn.reference_code)

    announce_gate(txn, gate)
    publish(
        NotificationEvent(
            event_type="signing_completed",
            transaction_id=txn.id,
            recipient_ids=tuple(uid for uid in (txn.buyer_id, txn.seller_id, txn.agent_id) if uid),
            context={"reference_code": txn.reference_code},
        )
    )
    return txn
