"""Tests for Resend/FCM delivery and the HTTP retry helper."""

import httpx
import pytest

from bcare.core.config import settings
from bcare.services import notification_templates, notification_transport
from bcare.services.notification_transport import NotificationDeliveryError, post_with_retries


REAL_ASYNC_CLIENT = httpx.AsyncClient


@pytest.fixture
def provider(monkeypatch):
    """Route outbound HTTP to a handler; returns the list of captured requests."""
    captured: list[httpx.Request] = []
    replies: list[httpx.Response] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return replies.pop(0) if replies else httpx.Response(200, json={"id": "msg-1"})

    def client_factory(*args, **kwargs):
        return REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler))

    monkeypatch.setattr(notification_transport.httpx, "AsyncClient", client_factory)
    return captured, replies


@pytest.mark.asyncio
async def test_post_with_retries_retries_on_status():
    req = httpx.Request("POST", "https://example.com")
    responses = [
        httpx.Response(503, request=req),
        httpx.Response(200, json={"ok": True}, request=req),
    ]

    async def send():
        return responses.pop(0)

    response = await post_with_retries("Resend", send, max_attempts=2, base_delay=0, max_delay=0)

    assert response.status_code == 200
    assert responses == []


@pytest.mark.asyncio
async def test_post_with_retries_wraps_network_error_after_max_attempts():
    req = httpx.Request("POST", "https://example.com")
    calls = {"count": 0}

    async def send():
        calls["count"] += 1
        raise httpx.ConnectError("boom", request=req)

    with pytest.raises(NotificationDeliveryError, match="FCM request failed: ConnectError") as exc_info:
        await post_with_retries("FCM", send, max_attempts=3, base_delay=0, max_delay=0)

    assert calls["count"] == 3
    assert exc_info.value.provider == "FCM"
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_post_with_retries_does_not_retry_client_errors():
    calls = {"count": 0}

    async def send():
        calls["count"] += 1
        return httpx.Response(401)

    with pytest.raises(NotificationDeliveryError) as exc_info:
        await post_with_retries("Resend", send, max_attempts=3, base_delay=0, max_delay=0)

    assert calls["count"] == 1
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_send_email_dry_run_without_key(monkeypatch, provider):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "")
    captured, _ = provider

    assert await notification_transport.send_email("a@example.com", "Hi", "<p>x</p>") is None
    assert captured == []


@pytest.mark.asyncio
async def test_send_email_posts_to_resend(monkeypatch, provider):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
    captured, _ = provider

    message_id = await notification_transport.send_email("andi.opr@example.com", "Escalation", "<p>x</p>")

    assert message_id == "msg-1"
    assert str(captured[0].url) == notification_transport.RESEND_EMAILS_URL
    assert captured[0].headers["Authorization"] == "Bearer re_test"


@pytest.mark.asyncio
async def test_send_email_rejected_by_provider(monkeypatch, provider):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")
    _, replies = provider
    replies.append(httpx.Response(422, json={"message": "invalid to"}))

    with pytest.raises(NotificationDeliveryError, match="422"):
        await notification_transport.send_email("bad", "Escalation", "<p>x</p>")


@pytest.mark.asyncio
async def test_send_push_reports_fcm_failure(monkeypatch, provider):
    monkeypatch.setattr(settings, "FCM_SERVER_KEY", "fcm_test")
    captured, replies = provider
    replies.append(httpx.Response(200, json={"success": 0, "failure": 1}))

    with pytest.raises(NotificationDeliveryError):
        await notification_transport.send_push("stale-token", "SLA Warning", "body", {"ticket_id": 5})

    assert captured[0].headers["Authorization"] == "key=fcm_test"


def test_render_template_escapes_values():
    rendered = notification_templates.render_template(
        "<p>{{ description }}</p>{{missing}}", {"description": "<script>x</script>"}
    )

    assert rendered == "<p>&lt;script&gt;x&lt;/script&gt;</p>"
