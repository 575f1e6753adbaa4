"""Outbound email (Resend) and push (FCM) delivery over HTTP.

Both senders dry-run when their API key is unset: the message is logged
and skipped. Callers decide whether a failure matters; the ticket
notifiers log and continue.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable

import httpx

from bcare.core.config import settings
from bcare.core.structured_logging import mask_email

logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
REQUEST_TIMEOUT_SECONDS = 15.0


class NotificationDeliveryError(Exception):
    """Provider rejected the message or could not be reached."""

    def __init__(self, message: str, *, provider: str, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


def _backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    delay = min(max_delay, base_delay * (2**attempt))
    return delay + random.uniform(0, delay / 2) if delay else 0.0


async def post_with_retries(
    provider: str,
    send: Callable[[], Awaitable[httpx.Response]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
) -> httpx.Response:
    """
    Call a notification provider, retrying throttling, 5xx and network errors.

    Returns the first 2xx response. Anything else, once attempts run out or
    on a non-retryable status, raises NotificationDeliveryError.
    """
    for attempt in range(1, max_attempts + 1):
        last_try = attempt == max_attempts
        try:
            response = await send()
        except httpx.RequestError as exc:
            if last_try:
                raise NotificationDeliveryError(
                    f"{provider} request failed: {type(exc).__name__}", provider=provider
                ) from exc
            logger.warning(
                "%s unreachable (attempt %s/%s): %s",
                provider, attempt, max_attempts, type(exc).__name__,
            )
        else:
            if response.status_code < 300:
                return response
            if last_try or response.status_code not in RETRYABLE_STATUSES:
                raise NotificationDeliveryError(
                    f"{provider} API error {response.status_code}",
                    provider=provider,
                    status_code=response.status_code,
                )
            logger.warning(
                "%s returned %s (attempt %s/%s)",
                provider, response.status_code, attempt, max_attempts,
            )
        await asyncio.sleep(_backoff(attempt - 1, base_delay, max_delay))

    raise NotificationDeliveryError(f"{provider}: no delivery attempt made", provider=provider)


async def send_email(recipient: str, subject: str, html: str) -> str | None:
    """
    Send one email through Resend.

    Returns the provider message id, or None on dry run.

    Raises:
        NotificationDeliveryError: non-2xx response or transport failure
    """
    if not settings.RESEND_API_KEY:
        logger.info("[DRY RUN] Email to %s skipped: %s", mask_email(recipient), subject)
        return None

    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
        response = await post_with_retries(
            "Resend",
            lambda: client.post(
                RESEND_EMAILS_URL,
                headers={
                    "Authorization": f"Bearer {settings.RESEND_API_KEY}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": settings.EMAIL_FROM,
                    "to": [recipient],
                    "subject": subject,
                    "html": html,
                },
            ),
        )

    message_id = response.json().get("id")
    logger.info("Email sent to %s message_id=%s", mask_email(recipient), message_id)
    return message_id


async def send_push(token: str, title: str, body: str, data: dict | None = None) -> None:
    """
    Send one push notification through FCM.

    Raises:
        NotificationDeliveryError: non-2xx response, FCM failure, or transport failure
    """
    if not settings.FCM_SERVER_KEY:
        logger.info("[DRY RUN] Push skipped: %s", title)
        return

    payload = {
        "to": token,
        "notification": {"title": title, "body": body},
        # FCM data values must be strings
        "data": {key: str(value) for key, value in (data or {}).items()},
    }
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
        response = await post_with_retries(
            "FCM",
            lambda: client.post(
                settings.FCM_ENDPOINT,
                headers={
                    "Authorization": f"key={settings.FCM_SERVER_KEY}",
                    "Content-Type": "application/json",
                },
                json=payload,
            ),
        )

    # FCM answers 200 even when the token was rejected
    if response.json().get("failure"):
        raise NotificationDeliveryError("FCM rejected the registration token", provider="FCM")
    logger.info("Push sent: %s", title)
