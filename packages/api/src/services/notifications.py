# This project was developed with assistance from AI tools.
"""Workflow notification dispatcher.

Services call ``publish()`` only after their commit. Delivery runs as a
background task: recipients are resolved from the participant directory
with a fresh session, and each email is POSTed to a SendGrid-compatible
``mail/send`` endpoint with httpx. Provider failures surface as
``DependencyError`` and are logged; nothing here can fail the request
that published the event.
"""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx
from db import DatabaseService, Participant
from sqlalchemy import select

from ..core.config import Settings
from ..core.errors import DependencyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationEvent:
    event_type: str
    transaction_id: int | None
    recipient_ids: tuple[str, ...]
    context: dict = field(default_factory=dict)


# (subject, body) per event type; formatted with the event context.
_TEMPLATES: dict[str, tuple[str, str]] = {
    "offer_submitted": (
        "New offer on {address}",
        "A buyer submitted an offer of ${amount} on {address}. Review it in your dashboard.",
    ),
    "offer_accepted": (
        "Your offer on {address} was accepted",
        "Congratulations! Your offer of ${amount} was accepted. "
        "Transaction {reference_code} is now open.",
    ),
    "offer_rejected": (
        "Update on your offer for {address}",
        "The seller declined your offer. Seller response: {seller_response}",
    ),
    "offer_countered": (
        "Counter offer on {address}",
        "The seller countered with ${counter_amount}. Seller response: {seller_response}",
    ),
    "offer_withdrawn": (
        "Offer withdrawn on {address}",
        "The buyer withdrew their offer of ${amount}.",
    ),
    "phase_advanced": (
        "Transaction {reference_code} moved to {phase}",
        "Your transaction advanced from {previous_phase} to {phase}.",
    ),
    "transaction_completed": (
        "Transaction {reference_code} has closed",
        "All closing steps are complete. Congratulations on closing!",
    ),
    "transaction_cancelled": (
        "Transaction {reference_code} was cancelled",
        "The transaction was cancelled. Reason: {reason}",
    ),
    "earnest_money_uploaded": (
        "Earnest money confirmation uploaded for {reference_code}",
        "The buyer uploaded a wire confirmation. Please verify receipt of the funds.",
    ),
    "earnest_money_verified": (
        "Earnest money received for {reference_code}",
        "Your earnest money deposit has been verified.",
    ),
    "earnest_money_rejected": (
        "Earnest money needs attention on {reference_code}",
        "Your earnest money deposit could not be verified. {notes}",
    ),
    "repair_request_submitted": (
        "Repair request on {reference_code}",
        "The buyer requested {item_count} repairs after the inspection.",
    ),
    "repair_request_answered": (
        "Seller responded to your repair request on {reference_code}",
        "The seller's answer: {status}. {seller_response}",
    ),
    "appraisal_low": (
        "Low appraisal on {reference_code}",
        "The property appraised at ${appraised_value}, ${appraisal_gap} below the purchase "
        "price. Buyer and seller need to agree on how to proceed.",
    ),
    "closing_appointment_scheduled": (
        "Closing appointment for {reference_code}",
        "Your closing is scheduled for {scheduled_at} at {location}. Please confirm.",
    ),
    "underwriting_condition_added": (
        "New underwriting condition: {title}",
        "Your lender requested: {title}. {description}",
    ),
    "underwriting_status_changed": (
        "Underwriting update for {reference_code}",
        "Underwriting status is now {status}.",
    ),
    "closing_disclosure_uploaded": (
        "Closing Disclosure ready for {reference_code}",
        "Your Closing Disclosure has been received and is ready for review.",
    ),
    "discrepancy_flagged": (
        "Fee discrepancy flagged on {reference_code}",
        "{fee_item}: estimated ${estimated_amount}, actual ${actual_amount} "
        "(difference ${difference}).",
    ),
    "signing_completed": (
        "Closing documents signed for {reference_code}",
        "All closing documents are signed and funds are confirmed.",
    ),
    "recording_completed": (
        "Deed recorded for {reference_code}",
        "The county recorded the deed (reference {county_reference}).",
    ),
    "document_sent": (
        "Please sign: {document_name}",
        "{document_name} was sent for e-signature. Check your inbox for the signing link.",
    ),
}


class _SafeContext(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render(event: NotificationEvent) -> tuple[str, str]:
    """Return (subject, body) for an event; unknown types get a generic message."""
    subject, body = _TEMPLATES.get(
        event.event_type,
        ("Transaction update", "There is an update on your transaction ({event_type})."),
    )
    ctx = _SafeContext(event.context, event_type=event.event_type)
    return subject.format_map(ctx), body.format_map(ctx)


class NotificationDispatcher:
    """Fire-and-forget email delivery for workflow events."""

    def __init__(
        self,
        *,
        db_service: DatabaseService | None,
        api_url: str,
        api_key: str | None,
        from_email: str,
        enabled: bool = True,
        timeout: float = 10.0,
    ):
        self._db_service = db_service
        self._api_url = api_url
        self._api_key = api_key
        self._from_email = from_email
        self._enabled = enabled and bool(api_key)
        self._timeout = timeout
        self._tasks: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def publish(self, event: NotificationEvent) -> None:
        logger.info(
            "Workflow event %s (transaction=%s, recipients=%d)",
            event.event_type,
            event.transaction_id,
            len(event.recipient_ids),
        )
        if not self._enabled or not event.recipient_ids:
            return
        task = asyncio.create_task(self.deliver(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def deliver(self, event: NotificationEvent) -> int:
        """Send the event to every resolvable recipient; return the number sent."""
        sent = 0
        try:
            recipients = await self._resolve_recipients(event.recipient_ids)
        except Exception:
            logger.exception("Could not resolve recipients for %s", event.event_type)
            return 0

        subject, body = render(event)
        for email, name in recipients:
            try:
                await self.send_email(email, name, subject, body)
                sent += 1
            except DependencyError as exc:
                logger.error("Notification %s not delivered: %s", event.event_type, exc.message)
        return sent

    async def _resolve_recipients(self, user_ids: tuple[str, ...]) -> list[tuple[str, str]]:
        if self._db_service is None:
            return []
        async with self._db_service.session() as session:
            result = await session.execute(
                select(Participant.email, Participant.full_name).where(
                    Participant.user_id.in_(user_ids)
                )
            )
            rows = result.all()
        if len(rows) < len(set(user_ids)):
            logger.debug(
                "%d of %d recipients have no contact details",
                len(set(user_ids)) - len(rows),
                len(set(user_ids)),
            )
        return [(row.email, row.full_name) for row in rows if row.email]

    async def send_email(self, to_email: str, to_name: str, subject: str, body: str) -> None:
        payload = {
            "personalizations": [{"to": [{"email": to_email, "name": to_name}]}],
            "from": {"email": self._from_email},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DependencyError(f"Email delivery to {to_email} failed: {exc}") from exc

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


# ---------------------------------------------------------------------------
# Module-level dispatcher (initialised in app lifespan)
# ---------------------------------------------------------------------------

_dispatcher: NotificationDispatcher | None = None


def init_dispatcher(cfg: Settings, db_service: DatabaseService | None) -> NotificationDispatcher:
    global _dispatcher  # noqa: PLW0603
    _dispatcher = NotificationDispatcher(
        db_service=db_service,
        api_url=cfg.SENDGRID_API_URL,
        api_key=cfg.SENDGRID_API_KEY,
        from_email=cfg.NOTIFICATION_FROM_EMAIL,
        enabled=cfg.NOTIFICATIONS_ENABLED,
        timeout=cfg.NOTIFICATION_TIMEOUT,
    )
    logger.info("Notification dispatcher initialised (enabled=%s)", _dispatcher.enabled)
    return _dispatcher


def get_dispatcher() -> NotificationDispatcher | None:
    return _dispatcher


def publish(event: NotificationEvent) -> None:
    """Hand an event to the dispatcher; never raises."""
    if _dispatcher is None:
        logger.debug("No dispatcher; dropping %s event", event.event_type)
        return
    try:
        _dispatcher.publish(event)
    except Exception:
        logger.exception("Failed to schedule %s notification", event.event_type)
