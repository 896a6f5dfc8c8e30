# This project was developed with assistance from AI tools.
"""S3-compatible object storage for closing documents.

Uses a boto3 synchronous client run in a thread-pool executor for async
compatibility. The module exposes a singleton initialised at app startup
via ``init_storage_service()``.
"""

import asyncio
import logging
import os
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings, settings
from ..core.errors import DependencyError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
}


def validate_upload(file_data: bytes, content_type: str) -> None:
    """Reject empty, oversized or unsupported uploads before anything is stored."""
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(
            f"Unsupported content type: {content_type}. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}"
        )
    if not file_data:
        raise ValidationError("Uploaded file is empty")
    max_bytes = settings.UPLOAD_MAX_SIZE_MB * 1024 * 1024
    if len(file_data) > max_bytes:
        raise ValidationError(
            f"File size {len(file_data)} exceeds maximum of {settings.UPLOAD_MAX_SIZE_MB}MB"
        )


class StorageService:
    """Thin wrapper around a boto3 S3 client."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        region: str = "us-east-1",
    ):
        self._bucket = bucket
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=BotoConfig(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
        )

    def ensure_bucket(self) -> None:
        """Create the bucket if it doesn't already exist (dev convenience)."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError:
            logger.info("Creating S3 bucket: %s", self._bucket)
            self._client.create_bucket(Bucket=self._bucket)

    async def upload_file(
        self,
        file_data: bytes,
        object_key: str,
        content_type: str,
    ) -> str:
        """Upload bytes to S3 and return the object key."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(
                    self._client.put_object,
                    Bucket=self._bucket,
                    Key=object_key,
                    Body=file_data,
                    ContentType=content_type,
                ),
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 upload failed for %s: %s", object_key, exc)
            raise DependencyError(f"Document storage unavailable: {exc}") from exc
        return object_key

    async def download_file(self, object_key: str) -> bytes:
        """Download file bytes from S3."""
        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                None,
                partial(self._client.get_object, Bucket=self._bucket, Key=object_key),
            )
        except (BotoCoreError, ClientError) as exc:
            raise DependencyError(f"Document storage unavailable: {exc}") from exc
        return response["Body"].read()

    async def delete_file(self, object_key: str) -> bool:
        """Remove an object; failures are logged and reported as False."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(self._client.delete_object, Bucket=self._bucket, Key=object_key),
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("S3 delete failed for %s: %s", object_key, exc)
            return False
        return True

    async def get_download_url(self, object_key: str, expires_in: int = 3600) -> str:
        """Return a presigned GET URL for the given object key."""
        loop = asyncio.get_running_loop()
        url: str = await loop.run_in_executor(
            None,
            partial(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self._bucket, "Key": object_key},
                ExpiresIn=expires_in,
            ),
        )
        return url

    @staticmethod
    def build_object_key(transaction_id: int | None, category: str, filename: str) -> str:
        """Build the S3 object key: transactions/{id}/{category}/{uuid}-{filename}.

        Strips path components from filename to prevent path traversal attacks.
        """
        safe_name = os.path.basename(filename) or f"{category}.pdf"
        owner = f"transactions/{transaction_id}" if transaction_id is not None else "unassigned"
        return f"{owner}/{category}/{uuid.uuid4().hex[:12]}-{safe_name}"


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_service: StorageService | None = None


def init_storage_service(cfg: Settings) -> StorageService:
    """Initialise the singleton (called once from app lifespan)."""
    global _service  # noqa: PLW0603
    _service = StorageService(
        endpoint=cfg.S3_ENDPOINT,
        access_key=cfg.S3_ACCESS_KEY,
        secret_key=cfg.S3_SECRET_KEY,
        bucket=cfg.S3_BUCKET,
        region=cfg.S3_REGION,
    )
    try:
        _service.ensure_bucket()
    except (BotoCoreError, ClientError) as exc:
        logger.warning("Could not verify S3 bucket %s at startup: %s", cfg.S3_BUCKET, exc)
    logger.info("StorageService initialised (bucket=%s)", cfg.S3_BUCKET)
    return _service


def get_storage_service() -> StorageService:
    """Return the initialised StorageService singleton."""
    if _service is None:
        raise RuntimeError("StorageService not initialised -- call init_storage_service() first")
    return _service


@asynccontextmanager
async def staged_upload(
    storage: StorageService,
    file_data: bytes,
    object_key: str,
    content_type: str,
) -> AsyncIterator[str]:
    """Upload an object for a database write that follows.

    If the body raises (validation, a failed commit), the object is deleted
    again so storage never holds a file no row points at.
    """
    await storage.upload_file(file_data, object_key, content_type)
    try:
        yield object_key
    except Exception:
        logger.info("Discarding %s after a failed write", object_key)
        await storage.delete_file(object_key)
        raise
