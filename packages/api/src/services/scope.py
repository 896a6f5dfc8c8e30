# This project was developed with assistance from AI tools.
"""Shared data scope filtering and party checks for transaction queries.

Centralizes the DataScope -> SQL WHERE logic so every resource service
applies the same visibility rule, and the record-level check that the caller
holds an allowed party role on a specific transaction.
"""

import logging

from db import PartyRole, Transaction
from sqlalchemy import false, or_

from ..core.errors import ForbiddenError
from ..schemas.auth import DataScope, UserContext

logger = logging.getLogger(__name__)

PARTY_COLUMNS = {
    PartyRole.BUYER: Transaction.buyer_id,
    PartyRole.SELLER: Transaction.seller_id,
    PartyRole.AGENT: Transaction.agent_id,
    PartyRole.LENDER: Transaction.lender_id,
    PartyRole.TITLE_OFFICER: Transaction.title_officer_id,
}

ALL_PARTIES = tuple(PartyRole)


def apply_transaction_scope(stmt, scope: DataScope):
    """Restrict a Transaction query to rows the caller may see."""
    if scope.full_pipeline:
        return stmt
    if not scope.user_id:
        return stmt.where(false())
    return stmt.where(or_(*(col == scope.user_id for col in PARTY_COLUMNS.values())))


def party_roles(transaction: Transaction, user_id: str) -> set[PartyRole]:
    """Party roles ``user_id`` holds on ``transaction``."""
    return {
        role
        for role, col in PARTY_COLUMNS.items()
        if getattr(transaction, col.key) == user_id
    }


def ensure_party(transaction: Transaction, user: UserContext, *allowed: PartyRole) -> None:
    """Raise ForbiddenError unless the caller holds one of ``allowed`` on the deal."""
    if user.data_scope.full_pipeline:
        return
    if party_roles(transaction, user.user_id) & set(allowed):
        return
    logger.warning(
        "Party check denied: user=%s transaction=%s requires %s",
        user.user_id,
        transaction.id,
        [r.value for r in allowed],
    )
    raise ForbiddenError(
        "Only the " + ", ".join(r.value.replace("_", " ") for r in allowed)
        + " on this transaction may perform this action"
    )
