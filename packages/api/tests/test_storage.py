# This project was developed with assistance from AI tools.
"""Unit tests for upload validation and staged uploads."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.core.errors import ValidationError
from src.services.storage import staged_upload, validate_upload


def _storage():
    storage = MagicMock()
    storage.upload_file = AsyncMock(side_effect=lambda data, key, content_type: key)
    storage.delete_file = AsyncMock(return_value=True)
    return storage


def test_unsupported_content_type_is_rejected():
    with pytest.raises(ValidationError, match="Unsupported content type: text/html"):
        validate_upload(b"<html>", "text/html")


def test_empty_upload_is_rejected():
    with pytest.raises(ValidationError, match="empty"):
        validate_upload(b"", "application/pdf")


async def test_staged_upload_keeps_the_object_when_the_write_succeeds():
    storage = _storage()

    async with staged_upload(storage, b"%PDF", "transactions/1/cd.pdf", "application/pdf") as key:
        assert key == "transactions/1/cd.pdf"

    storage.upload_file.assert_awaited_once_with(
        b"%PDF", "transactions/1/cd.pdf", "application/pdf",
    )
    storage.delete_file.assert_not_awaited()


async def test_staged_upload_discards_the_object_when_the_commit_fails():
    storage = _storage()
    failure = IntegrityError("INSERT INTO closing_disclosures", {}, Exception("duplicate key"))

    with pytest.raises(IntegrityError):
        async with staged_upload(storage, b"%PDF", "transactions/1/cd.pdf", "application/pdf"):
            raise failure

    storage.delete_file.assert_awaited_once_with("transactions/1/cd.pdf")


async def test_failed_upload_leaves_nothing_to_discard():
    storage = _storage()
    storage.upload_file = AsyncMock(side_effect=RuntimeError("S3 unavailable"))
    body_ran = False

    with pytest.raises(RuntimeError):
        async with staged_upload(storage, b"%PDF", "transactions/1/cd.pdf", "application/pdf"):
            body_ran = True

    assert body_ran is False
    storage.delete_file.assert_not_awaited()
