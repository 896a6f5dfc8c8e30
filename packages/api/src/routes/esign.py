# This project was developed with assistance from AI tools.
"""DocuSign Connect webhook.

Unauthenticated by token: every payload must carry a valid HMAC signature
made with ``DOCUSIGN_HMAC_KEY``. Without a key the webhook refuses all calls
unless ``DOCUSIGN_WEBHOOK_UNSIGNED_ALLOWED`` is set.
"""

import json
import logging

from db import get_db
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.errors import UnauthorizedError, ValidationError
from ..schemas.loi import WebhookAck
from ..services import loi as loi_service
from ..services.esign import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook", response_model=WebhookAck)
async def docusign_webhook(
    request: Request,
    session: AsyncSession = Depends(get_db),
) -> WebhookAck:
    """Apply an envelope status update to its letter."""
    raw_body = await request.body()
    if not verify_signature(
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        settings.DOCUSIGN_HMAC_KEY,
        allow_unsigned=settings.DOCUSIGN_WEBHOOK_UNSIGNED_ALLOWED,
    ):
        logger.warning("Rejected DocuSign webhook with a bad or missing signature")
        raise UnauthorizedError("Invalid webhook signature")
    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError as exc:
        raise ValidationError("Webhook body is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")

    letter = await loi_service.handle_webhook(session, payload)
    if letter is None:
        return WebhookAck(status="ignored")
    return WebhookAck(document_id=letter.document_id, letter_status=letter.status)
