# This project was developed with assistance from AI tools.
"""Home inspection and the repair negotiation that follows it.

Uploading the inspector's report completes the inspection and the
``home_inspection_completed`` step. The buyer may then raise one repair
request per inspection; the seller accepts, rejects or negotiates it, item
by item. Completing accepted repairs satisfies the inspection contingency.
"""

import logging
from datetime import UTC, datetime

from db import (
    ContingencyType,
    Inspection,
    InspectionStatus,
    PartyRole,
    RepairItem,
    RepairRequest,
    RepairRequestStatus,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from ..schemas.auth import UserContext
from ..schemas.inspection import InspectionCreate, RepairRequestCreate, RepairResponseRequest
from .audit import write_activity
from .contingency import satisfy_contingency
from .notifications import NotificationEvent, publish
from .phase_gate import announce_gate, settle_transaction
from .state_machine import require_transition
from .storage import get_storage_service, staged_upload, validate_upload
from .task_ledger import is_task_completed, upsert_task_by_code
from .transaction import require_transaction

logger = logging.getLogger(__name__)

BUYER_SIDE = (PartyRole.BUYER, PartyRole.AGENT)
SELLER_SIDE = (PartyRole.SELLER, PartyRole.AGENT)


async def _repair_view(session: AsyncSession, request: RepairRequest) -> dict:
    items = (
        await session.execute(
            select(RepairItem)
            .where(RepairItem.repair_request_id == request.id)
            .order_by(RepairItem.id)
        )
    ).scalars().all()
    return {
        "id": request.id,
        "inspection_id": request.inspection_id,
        "status": request.status,
        "buyer_notes": request.buyer_notes,
        "deadline_date": request.deadline_date,
        "seller_response": request.seller_response,
        "negotiated_terms": request.negotiated_terms,
        "responded_at": request.responded_at,
        "completed_at": request.completed_at,
        "items": list(items),
    }


async def inspection_view(session: AsyncSession, inspection: Inspection) -> dict:
    """Inspection with its repair request (if any), ready for the response model."""
    repair = (
        await session.execute(
            select(RepairRequest).where(RepairRequest.inspection_id == inspection.id)
        )
    ).scalar_one_or_none()
    return {
        "id": inspection.id,
        "transaction_id": inspection.transaction_id,
        "inspector_name": inspection.inspector_name,
        "inspector_company": inspection.inspector_company,
        "scheduled_date": inspection.scheduled_date,
        "inspection_fee": inspection.inspection_fee,
        "status": inspection.status,
        "report_file_name": inspection.report_file_name,
        "summary": inspection.summary,
        "completed_at": inspection.completed_at,
        "repair_request": await _repair_view(session, repair) if repair else None,
    }


async def _require_inspection(
    session: AsyncSession, transaction_id: int, inspection_id: int,
) -> Inspection:
    inspection = (
        await session.execute(
            select(Inspection).where(Inspection.id == inspection_id).with_for_update()
        )
    ).scalar_one_or_none()
    if inspection is None or inspection.transaction_id != transaction_id:
        raise NotFoundError(f"Inspection {inspection_id} not found on this transaction")
    return inspection


async def _require_repair_request(
    session: AsyncSession, transaction_id: int, request_id: int,
) -> RepairRequest:
    repair = (
        await session.execute(
            select(RepairRequest).where(RepairRequest.id == request_id).with_for_update()
        )
    ).scalar_one_or_none()
    if repair is None or repair.transaction_id != transaction_id:
        raise NotFoundError(f"Repair request {request_id} not found on this transaction")
    return repair


async def list_inspections(
    session: AsyncSession, user: UserContext, transaction_id: int,
) -> list[dict]:
    txn = await require_transaction(session, user, transaction_id, mutable=False)
    inspections = (
        await session.execute(
            select(Inspection)
            .where(Inspection.transaction_id == txn.id)
            .order_by(Inspection.scheduled_date, Inspection.id)
        )
    ).scalars().all()
    return [await inspection_view(session, i) for i in inspections]


async def schedule_inspection(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    data: InspectionCreate,
) -> dict:
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    inspection = Inspection(
        transaction_id=txn.id,
        inspector_name=data.inspector_name,
        inspector_company=data.inspector_company,
        scheduled_date=data.scheduled_date,
        inspection_fee=data.inspection_fee,
        status=InspectionStatus.SCHEDULED,
        created_by=user.user_id,
    )
    session.add(inspection)
    await session.flush()
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="inspection_scheduled",
        details={"inspection_id": inspection.id, "date": data.scheduled_date.isoformat()},
    )
    await session.commit()
    await session.refresh(inspection)
    return await inspection_view(session, inspection)


async def upload_report(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    inspection_id: int,
    *,
    summary: str | None,
    filename: str,
    content_type: str,
    file_data: bytes,
) -> dict:
    """Store the inspector's report and complete the inspection.

    A completed inspection accepts a new report only after a phase revert
    reopened the inspection step.
    """
    validate_upload(file_data, content_type)
    txn = await require_transaction(
        session, user, transaction_id, parties=BUYER_SIDE, for_update=True,
    )
    inspection = await _require_inspection(session, txn.id, inspection_id)
    if inspection.status == InspectionStatus.COMPLETED and await is_task_completed(
        session, txn.id, "home_inspection_completed"
    ):
        raise ConflictError(f"Inspection {inspection.id} already has a report")

    storage = get_storage_service()
    object_key = storage.build_object_key(txn.id, "inspections", filename)
    async with staged_upload(storage, file_data, object_key, content_type):
        inspection.status = InspectionStatus.COMPLETED
        inspection.report_file_name = filename
        inspection.report_storage_key = object_key
        inspection.summary = summary
        inspection.completed_at = datetime.now(UTC)
        await upsert_task_by_code(
            session, txn.id, "home_inspection_completed", updated_by=user.user_id,
        )
        write_activity(
            session,
            transaction_id=txn.id,
            actor_id=user.user_id,
            action="inspection_completed",
            details={"inspection_id": inspection.id, "file_name": filename},
        )
        gate = await settle_transaction(session, txn, actor_id=user.user_id)
        await session.commit()
    await session.refresh(inspection)
    await session.refresh(txn)
    announce_gate(txn, gate)
    return await inspection_view(session, inspection)


async def create_repair_request(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    inspection_id: int,
    data: RepairRequestCreate,
) -> dict:
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.BUYER,), for_update=True,
    )
    inspection = await _require_inspection(session, txn.id, inspection_id)
    if inspection.status != InspectionStatus.COMPLETED:
        raise InvalidStateError(
            "Repairs can be requested once the inspection is complete",
            current_state=inspection.status.value,
        )
    existing = await session.scalar(
        select(RepairRequest.id).where(RepairRequest.inspection_id == inspection.id)
    )
    if existing is not None:
        raise ConflictError(f"Inspection {inspection.id} already has a repair request")

    repair = RepairRequest(
        inspection_id=inspection.id,
        transaction_id=txn.id,
        status=RepairRequestStatus.PENDING,
        buyer_notes=data.buyer_notes,
        deadline_date=data.deadline_date,
        requested_by=user.user_id,
    )
    session.add(repair)
    await session.flush()
    session.add_all(
        RepairItem(
            repair_request_id=repair.id,
            description=item.description,
            priority=item.priority,
            requested_action=item.requested_action,
        )
        for item in data.items
    )
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="repair_request_submitted",
        details={"repair_request_id": repair.id, "items": len(data.items)},
    )
    await session.commit()
    await session.refresh(repair)

    publish(
        NotificationEvent(
            event_type="repair_request_submitted",
            transaction_id=txn.id,
            recipient_ids=tuple(uid for uid in (txn.seller_id, txn.agent_id) if uid),
            context={"reference_code": txn.reference_code, "item_count": len(data.items)},
        )
    )
    return await _repair_view(session, repair)


async def respond_to_repair_request(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request_id: int,
    data: RepairResponseRequest,
) -> dict:
    """Seller's answer, with an optional per-item response."""
    txn = await require_transaction(
        session, user, transaction_id, parties=(PartyRole.SELLER,), for_update=True,
    )
    repair = await _require_repair_request(session, txn.id, request_id)
    if data.status == RepairRequestStatus.COMPLETED:
        raise ValidationError("Use the completion endpoint once repairs are done")
    require_transition(repair.status, data.status, entity="repair request")
    if data.status == RepairRequestStatus.NEGOTIATED and not data.negotiated_terms:
        raise ValidationError("A negotiated response requires the negotiated terms")

    items = {
        item.id: item
        for item in (
            await session.execute(
                select(RepairItem).where(RepairItem.repair_request_id == repair.id)
            )
        ).scalars()
    }
    for decision in data.items:
        item = items.get(decision.item_id)
        if item is None:
            raise NotFoundError(f"Repair item {decision.item_id} not found on this request")
        item.seller_response = decision.response
        item.counter_offer = decision.counter_offer

    repair.status = data.status
    repair.seller_response = data.seller_response
    if data.negotiated_terms is not None:
        repair.negotiated_terms = data.negotiated_terms
    repair.responded_at = datetime.now(UTC)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="repair_request_answered",
        details={"repair_request_id": repair.id, "status": data.status.value},
    )
    await session.commit()
    await session.refresh(repair)
    logger.info(
        "Repair request %s on transaction %s %s",
        repair.id, txn.reference_code, data.status.value,
    )

    publish(
        NotificationEvent(
            event_type="repair_request_answered",
            transaction_id=txn.id,
            recipient_ids=tuple(uid for uid in (txn.buyer_id, txn.agent_id) if uid),
            context={
                "reference_code": txn.reference_code,
                "status": data.status.value,
                "seller_response": data.seller_response or "",
            },
        )
    )
    return await _repair_view(session, repair)


async def complete_repairs(
    session: AsyncSession,
    user: UserContext,
    transaction_id: int,
    request_id: int,
) -> dict:
    txn = await require_transaction(
        session, user, transaction_id, parties=SELLER_SIDE, for_update=True,
    )
    repair = await _require_repair_request(session, txn.id, request_id)
    require_transition(repair.status, RepairRequestStatus.COMPLETED, entity="repair request")

    repair.status = RepairRequestStatus.COMPLETED
    repair.completed_at = datetime.now(UTC)
    await satisfy_contingency(session, txn.id, ContingencyType.INSPECTION, actor_id=user.user_id)
    write_activity(
        session,
        transaction_id=txn.id,
        actor_id=user.user_id,
        action="repairs_completed",
        details={"repair_request_id": repair.id},
    )
    await session.commit()
    await session.refresh(repair)
    return await _repair_view(session, repair)
