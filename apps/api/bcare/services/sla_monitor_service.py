"""SLA monitor sweeps: due-soon warnings and overdue alerts.

Both sweeps are stateless reads against the current time; running one
twice with unchanged data selects the same tickets again. There is no
per-ticket "already notified" marker.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from bcare.core.config import settings
from bcare.db.models import Ticket
from bcare.services import notification_templates, notification_transport
from bcare.services.notification_templates import PushMessage
from bcare.services.policy_service import as_utc

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Counts for one sweep run."""

    candidates: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _open_tickets(db: Session):
    return db.query(Ticket).filter(
        Ticket.closed_time.is_(None),
        Ticket.delete_at.is_(None),
    )


def find_tickets_due_soon(
    db: Session, now: datetime | None = None, window: timedelta | None = None
) -> list[Ticket]:
    """Open tickets whose due date falls in (now, now + window]."""
    now = as_utc(now) or _now_utc()
    window = window or timedelta(hours=settings.SLA_WARNING_WINDOW_HOURS)
    return (
        _open_tickets(db)
        .filter(
            Ticket.committed_due_at > now,
            Ticket.committed_due_at <= now + window,
        )
        .order_by(Ticket.committed_due_at, Ticket.id)
        .all()
    )


def find_overdue_tickets(db: Session, now: datetime | None = None) -> list[Ticket]:
    """Open tickets already past their due date."""
    now = as_utc(now) or _now_utc()
    return (
        _open_tickets(db)
        .filter(Ticket.committed_due_at < now)
        .order_by(Ticket.committed_due_at, Ticket.id)
        .all()
    )


def hours_overdue(ticket: Ticket, now: datetime) -> int:
    """Whole hours past due, rounded down."""
    elapsed = as_utc(now) - as_utc(ticket.committed_due_at)
    return max(0, math.floor(elapsed.total_seconds() / 3600))


async def _push(result: SweepResult, token: str | None, message: PushMessage, label: str) -> None:
    if not token:
        result.skipped += 1
        logger.info("SLA push skipped: %s has no device token", label)
        return
    try:
        await notification_transport.send_push(token, message.title, message.body, message.data)
    except notification_transport.NotificationDeliveryError as exc:
        result.failed += 1
        logger.warning("SLA push to %s failed: %s", label, exc)
        return
    result.sent += 1


async def run_sla_warning_sweep(db: Session, now: datetime | None = None) -> SweepResult:
    """Warn the customer and the responsible employee about tickets due soon."""
    now = as_utc(now) or _now_utc()
    hours_left = settings.SLA_WARNING_WINDOW_HOURS
    tickets = find_tickets_due_soon(db, now)
    result = SweepResult(candidates=len(tickets))

    for ticket in tickets:
        customer = ticket.customer
        await _push(
            result,
            customer.fcm_token if customer else None,
            notification_templates.sla_warning_push(ticket, hours_left, for_customer=True),
            f"customer of ticket {ticket.id}",
        )
        employee = ticket.responsible_employee
        if employee is None:
            logger.info("SLA warning for ticket %s has no responsible employee", ticket.id)
            continue
        await _push(
            result,
            employee.fcm_token,
            notification_templates.sla_warning_push(ticket, hours_left, for_customer=False),
            f"employee {employee.id}",
        )

    logger.info(
        "SLA warning sweep: candidates=%s sent=%s skipped=%s failed=%s",
        result.candidates,
        result.sent,
        result.skipped,
        result.failed,
    )
    return result


async def run_overdue_sweep(db: Session, now: datetime | None = None) -> SweepResult:
    """Alert the responsible employee about every overdue open ticket."""
    now = as_utc(now) or _now_utc()
    tickets = find_overdue_tickets(db, now)
    result = SweepResult(candidates=len(tickets))

    for ticket in tickets:
        employee = ticket.responsible_employee
        if employee is None:
            result.skipped += 1
            logger.info("Overdue alert for ticket %s has no responsible employee", ticket.id)
            continue
        await _push(
            result,
            employee.fcm_token,
            notification_templates.sla_overdue_push(ticket, hours_overdue(ticket, now)),
            f"employee {employee.id}",
        )

    if result.candidates:
        logger.warning(
            "SLA overdue sweep: candidates=%s sent=%s skipped=%s failed=%s",
            result.candidates,
            result.sent,
            result.skipped,
            result.failed,
        )
    return result
