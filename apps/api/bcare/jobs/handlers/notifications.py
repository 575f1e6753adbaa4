"""Ticket notification job handlers."""

from __future__ import annotations

import logging

from bcare.services import escalation_service

logger = logging.getLogger(__name__)


def _int_from_payload(payload: dict, key: str) -> int:
    value = payload.get(key)
    if value is None:
        raise ValueError(f"Missing {key} in job payload")
    return int(value)


def _optional_int(payload: dict, key: str) -> int | None:
    value = payload.get(key)
    return int(value) if value is not None else None


async def process_escalation_email(db, job) -> None:
    """Email the UIC division a ticket was escalated to."""
    payload = job.payload or {}
    dispatch = await escalation_service.notify_escalation(
        db,
        ticket_id=_int_from_payload(payload, "ticket_id"),
        actor_id=_optional_int(payload, "actor_id"),
    )
    logger.info(
        "Escalation job %s: recipients=%s failed=%s skipped=%s",
        job.id,
        dispatch.recipients,
        dispatch.failed,
        dispatch.skipped_reason,
    )


async def process_done_by_uic_email(db, job) -> None:
    """Email the responsible CXC agent that the UIC finished."""
    payload = job.payload or {}
    dispatch = await escalation_service.notify_done_by_uic(
        db,
        ticket_id=_int_from_payload(payload, "ticket_id"),
        actor_id=_optional_int(payload, "actor_id"),
    )
    logger.info(
        "Completion job %s: recipients=%s failed=%s skipped=%s",
        job.id,
        dispatch.recipients,
        dispatch.failed,
        dispatch.skipped_reason,
    )
