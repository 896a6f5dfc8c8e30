# This project was developed with assistance from AI tools.
"""Homeowners insurance binding and proof of insurance."""

import logging
import secrets
from datetime import UTC, datetime

from db import InsurancePolicy, InsuranceStatus, PartyRole
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ConflictError, NotFoundError
from ..schemas.auth import UserContext
from ..schemas.insurance import PolicyPurchaseRequest
from .audit import write_activity
from .phase_gate import announce_gate, settle_transaction
from .storage import get_storage_service, staged_upload, validate_upload
from .task_ledger import is_task_completed, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

BUYER_SIDE = (PartyRole.BUYER, PartyRole.AGENT)


def new_policy_number(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"POL-{now:%Y}-{secrets.token_hex(4).upper()}"


async def _policy(session: AsyncSession, transaction_id: int) -> InsurancePolicy | None:
    return (
        await session.execute(
            select(InsurancePolicy).where(InsurancePolicy.transaction_id == transaction_id)
        )
    ).scalar_one_or_none()


async def get_policy(
    session: AsyncSession, user: UserContext, transaction_id: int,
) -> InsurancePolicy:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    policy = await _policy(session, txn.id)
    if policy is None:
        raise NotFoundError("No insurance policy on this transaction")
    return policy


async def purchase_policy(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request: PolicyPurchaseRequest,
) -> InsurancePolicy:
    """Bind a homeowners policy for the buyer.

    After a phase revert reopened the insurance step, a new purchase
    replaces the existing policy instead of conflicting with it.
    """
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    policy = await _policy(session, txn.id)
    if policy is not None and await is_task_completed(
        session, txn.id, "homeowners_insurance_bound",
    ):
        raise ConflictError(f"Transaction {txn.reference_code} already has an insurance policy")

    if policy is None:
        policy = InsurancePolicy(transaction_id=txn.id)
        session.add(policy)
    for field, value in request.model_dump().items():
        setattr(policy, field, value)
    policy.policy_number = new_policy_number()
    policy.status = InsuranceStatus.PURCHASED
    policy.proof_storage_key = None
    await upsert_task_by_code(
        session, txn.id, "homeowners_insurance_bound", updated_by=user.user_id,
    )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="insurance_purchased",
        details={"carrier": request.carrier, "policy_number": policy.policy_number},
    )
    gate = await settle_transaction(session, txn, actor_id=user.user_id)
    await session.commit()
    await session.refresh(policy)
    await session.refresh(txn)
    logger.info("Policy %s bound for transaction %s", policy.policy_number, txn.reference_code)
    announce_gate(txn, gate)
    return policy


async def upload_proof(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    *,
    filename: str,
    content_type: str,
    file_data: bytes,
) -> InsurancePolicy:
    """Attach the carrier's proof of insurance to the policy."""
    validate_upload(file_data, content_type)
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    policy = await _policy(session, txn.id)
    if policy is None:
        raise NotFoundError("Purchase a policy before uploading proof of insurance")

    storage = get_storage_service()
    object_key = storage.build_object_key(txn.id, "insurance", filename)
    async with staged_upload(storage, file_data, object_key, content_type):
        policy.proof_storage_key = object_key
        policy.status = InsuranceStatus.PROOF_UPLOADED
        write_activity(
            session,
            transaction_id=txn.id,
            actor_id=user.user_id,
            action="insurance_proof_uploaded",
            details={"storage_key": object_key},
        )
        await session.commit()
    await session.refresh(policy)
    return policy
