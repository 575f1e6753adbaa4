"""Structured logging helpers (no customer personal data)."""

from typing import Any


def build_log_context(
    *,
    actor_id: int | None = None,
    ticket_id: int | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict safe to attach as ``extra``."""
    context: dict[str, Any] = {}
    if actor_id is not None:
        context["actor_id"] = actor_id
    if ticket_id is not None:
        context["ticket_id"] = ticket_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def mask_email(email: str | None) -> str:
    """Mask an email address for logs: ``abc...@domain``."""
    if not email:
        return ""
    local, _, domain = email.partition("@")
    prefix = local[:3] if local else ""
    return f"{prefix}...@{domain}" if domain else f"{prefix}..."
