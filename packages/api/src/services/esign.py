# This project was developed with assistance from AI tools.
"""DocuSign eSignature client (REST v2.1 over httpx) and Connect webhook helpers.

The client is a module-level singleton initialised in the app lifespan via
``init_esign_client()``.
"""

import base64
import hashlib
import hmac
import logging

import httpx
from db.enums import LetterStatus

from ..core.config import Settings
from ..core.errors import DependencyError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-DocuSign-Signature-1"

# DocuSign envelope status -> letter status. Statuses not listed are ignored.
ENVELOPE_STATUS_MAP: dict[str, LetterStatus] = {
    "sent": LetterStatus.SENT,
    "delivered": LetterStatus.VIEWED,
    "completed": LetterStatus.SIGNED,
    "declined": LetterStatus.REJECTED,
    "voided": LetterStatus.EXPIRED,
}

# recipientId per signer role on every envelope we create
RECIPIENT_IDS = {"buyer": "1", "seller": "2"}


def verify_signature(
    raw_body: bytes,
    signature: str | None,
    hmac_key: str | None,
    *,
    allow_unsigned: bool = False,
) -> bool:
    """Check a Connect HMAC-SHA256 signature.

    Without a key nothing can be verified, so payloads are refused unless
    ``allow_unsigned`` is set (local development against the Connect sandbox).
    """
    if not hmac_key:
        return allow_unsigned
    if not signature:
        return False
    digest = hmac.new(hmac_key.encode("utf-8"), raw_body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected, signature)


class ESignClient:
    """Creates signature envelopes for letters of intent."""

    def __init__(
        self,
        *,
        base_url: str,
        account_id: str | None,
        access_token: str | None,
        timeout: float = 15.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._account_id = account_id
        self._access_token = access_token
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._account_id and self._access_token)

    async def create_envelope(
        self,
        *,
        document_id: str,
        subject: str,
        pdf_bytes: bytes,
        signers: dict[str, dict],
    ) -> str:
        """Send a PDF for signature and return the envelope id.

        ``signers`` maps ``buyer``/``seller`` to ``{"name", "email"}``.
        """
        if not self.configured:
            raise DependencyError("E-signature provider is not configured")

        recipients = [
            {
                "email": signer["email"],
                "name": signer.get("name") or signer["email"],
                "recipientId": RECIPIENT_IDS[role],
                "routingOrder": RECIPIENT_IDS[role],
                "tabs": {
                    "signHereTabs": [
                        {"anchorString": f"{role.title()}:", "anchorYOffset": "-10"}
                    ]
                },
            }
            for role, signer in signers.items()
        ]
        payload = {
            "emailSubject": subject,
            "documents": [
                {
                    "documentBase64": base64.b64encode(pdf_bytes).decode("ascii"),
                    "name": f"{document_id}.pdf",
                    "fileExtension": "pdf",
                    "documentId": "1",
                }
            ],
            "recipients": {"signers": recipients},
            "status": "sent",
        }
        url = f"{self._base_url}/v2.1/accounts/{self._account_id}/envelopes"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._access_token}"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("DocuSign envelope creation failed for %s: %s", document_id, exc)
            raise DependencyError(f"E-signature provider error: {exc}") from exc

        envelope_id = data.get("envelopeId")
        if not envelope_id:
            raise DependencyError("E-signature provider returned no envelope id")
        logger.info("Envelope %s created for %s", envelope_id, document_id)
        return envelope_id


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_client: ESignClient | None = None


def init_esign_client(cfg: Settings) -> ESignClient:
    global _client  # noqa: PLW0603
    _client = ESignClient(
        base_url=cfg.DOCUSIGN_BASE_URL,
        account_id=cfg.DOCUSIGN_ACCOUNT_ID,
        access_token=cfg.DOCUSIGN_ACCESS_TOKEN,
    )
    logger.info("E-sign client initialised (configured=%s)", _client.configured)
    return _client


def get_esign_client() -> ESignClient:
    if _client is None:
        raise RuntimeError("ESignClient not initialised -- call init_esign_client() first")
    return _client
