# This project was developed with assistance from AI tools.
"""Tests for workflow notification rendering and delivery."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.core.errors import DependencyError
from src.services import notifications
from src.services.notifications import NotificationDispatcher, NotificationEvent, render

_REAL_ASYNC_CLIENT = httpx.AsyncClient


def _dispatcher(**overrides) -> NotificationDispatcher:
    kwargs = {
        "db_service": None,
        "api_url": "https://mail.test/v3/mail/send",
        "api_key": "sg-key",
        "from_email": "closings@test.local",
        "enabled": True,
    }
    kwargs.update(overrides)
    return NotificationDispatcher(**kwargs)


def _event(event_type="phase_advanced", recipients=("buyer-1",), **context):
    return NotificationEvent(
        event_type=event_type,
        transaction_id=7,
        recipient_ids=recipients,
        context=context,
    )


def _mock_transport(handler):
    transport = httpx.MockTransport(handler)
    return patch(
        "src.services.notifications.httpx.AsyncClient",
        side_effect=lambda **kw: _REAL_ASYNC_CLIENT(transport=transport, **kw),
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def test_render_fills_template():
    subject, body = render(
        _event(reference_code="TXN-1", previous_phase="financing", phase="insurance")
    )
    assert subject == "Transaction TXN-1 moved to insurance"
    assert "from financing to insurance" in body


def test_render_blanks_missing_keys():
    subject, _ = render(_event("offer_submitted", amount="1.00"))
    assert subject == "New offer on "


def test_render_unknown_event_is_generic():
    subject, body = render(_event("something_new"))
    assert subject == "Transaction update"
    assert "(something_new)" in body


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


def test_dispatcher_without_api_key_is_disabled():
    assert _dispatcher(api_key=None).enabled is False
    assert _dispatcher(enabled=False).enabled is False
    assert _dispatcher().enabled is True


async def test_disabled_dispatcher_schedules_nothing():
    dispatcher = _dispatcher(enabled=False)
    with patch.object(dispatcher, "deliver", new_callable=AsyncMock) as mock_deliver:
        dispatcher.publish(_event())
        await dispatcher.drain()
    mock_deliver.assert_not_called()


async def test_publish_runs_delivery_in_background():
    dispatcher = _dispatcher()
    with patch.object(dispatcher, "deliver", new_callable=AsyncMock) as mock_deliver:
        dispatcher.publish(_event())
        await dispatcher.drain()
    mock_deliver.assert_awaited_once()


async def test_deliver_sends_one_email_per_recipient():
    dispatcher = _dispatcher()
    recipients = [("a@example.com", "A"), ("b@example.com", "B")]
    with (
        patch.object(dispatcher, "_resolve_recipients", AsyncMock(return_value=recipients)),
        patch.object(dispatcher, "send_email", new_callable=AsyncMock) as mock_send,
    ):
        sent = await dispatcher.deliver(_event(recipients=("u1", "u2")))
    assert sent == 2
    assert mock_send.await_args_list[0].args[0] == "a@example.com"


async def test_deliver_counts_only_successful_sends():
    dispatcher = _dispatcher()
    recipients = [("a@example.com", "A"), ("b@example.com", "B")]
    send = AsyncMock(side_effect=[DependencyError("down"), None])
    with (
        patch.object(dispatcher, "_resolve_recipients", AsyncMock(return_value=recipients)),
        patch.object(dispatcher, "send_email", send),
    ):
        assert await dispatcher.deliver(_event(recipients=("u1", "u2"))) == 1


async def test_send_email_posts_sendgrid_payload():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = request.read()
        return httpx.Response(202)

    with _mock_transport(handler):
        await _dispatcher().send_email("a@example.com", "A", "Hi", "Body")

    assert captured["auth"] == "Bearer sg-key"
    assert b'"subject":"Hi"' in captured["body"].replace(b" ", b"")


async def test_send_email_failure_raises_dependency_error():
    with _mock_transport(lambda request: httpx.Response(500)):
        with pytest.raises(DependencyError):
            await _dispatcher().send_email("a@example.com", "A", "Hi", "Body")


# ---------------------------------------------------------------------------
# Module-level publish
# ---------------------------------------------------------------------------


def test_publish_without_dispatcher_is_a_no_op(monkeypatch):
    monkeypatch.setattr(notifications, "_dispatcher", None)
    notifications.publish(_event())


def test_publish_never_raises(monkeypatch):
    broken = MagicMock()
    broken.publish.side_effect = RuntimeError("no running loop")
    monkeypatch.setattr(notifications, "_dispatcher", broken)
    notifications.publish(_event())
    broken.publish.assert_called_once()
