"""Escalation and UIC-completion email notifiers.

Run from the worker, never from the request path. Delivery is
best-effort: per-recipient failures are logged and counted, and one
EMAIL_SENT activity is written whenever a send was attempted.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from bcare.core.structured_logging import mask_email
from bcare.db.enums import ActivityType, SenderType
from bcare.db.models import Division, Employee, Ticket
from bcare.services import activity_service, notification_templates, notification_transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationDispatch:
    """Outcome of a notifier run."""

    recipients: int = 0
    failed: int = 0
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


async def _send_all(recipients: list[Employee], subject: str, html: str) -> int:
    """Send to every recipient in parallel; return how many failed."""
    results = await asyncio.gather(
        *(notification_transport.send_email(r.email, subject, html) for r in recipients),
        return_exceptions=True,
    )
    failed = 0
    for recipient, result in zip(recipients, results):
        if isinstance(result, BaseException):
            failed += 1
            logger.warning(
                "Email to %s failed: %s",
                mask_email(recipient.email),
                type(result).__name__,
            )
    return failed


def _load_ticket(db: Session, ticket_id: int) -> Ticket | None:
    ticket = db.get(Ticket, ticket_id)
    if ticket is None or ticket.delete_at is not None:
        return None
    return ticket


def _sender(actor_id: int | None) -> SenderType:
    return SenderType.EMPLOYEE if actor_id is not None else SenderType.SYSTEM


def get_division_recipients(db: Session, division_id: int) -> list[Employee]:
    """Active employees of a division who have an email address."""
    return (
        db.query(Employee)
        .filter(
            Employee.division_id == division_id,
            Employee.is_active.is_(True),
            Employee.email.isnot(None),
        )
        .order_by(Employee.id)
        .all()
    )


async def notify_escalation(
    db: Session, *, ticket_id: int, actor_id: int | None = None
) -> NotificationDispatch:
    """Email every active employee of the ticket's UIC division."""
    ticket = _load_ticket(db, ticket_id)
    if ticket is None:
        logger.warning("Escalation notice skipped: ticket %s not found", ticket_id)
        return NotificationDispatch(skipped_reason="ticket_not_found")

    policy = ticket.policy
    if policy is None or policy.uic_id is None:
        logger.info("Escalation notice skipped: ticket %s has no UIC policy", ticket_id)
        return NotificationDispatch(skipped_reason="no_policy")

    division = db.get(Division, policy.uic_id)
    division_name = division.name if division else f"division {policy.uic_id}"

    recipients = get_division_recipients(db, policy.uic_id)
    if not recipients:
        logger.warning(
            "Escalation notice skipped: no active employees in division %s (ticket %s)",
            policy.uic_id,
            ticket_id,
        )
        return NotificationDispatch(skipped_reason="no_recipients")

    subject, html = notification_templates.escalation_email(ticket, division_name)
    failed = await _send_all(recipients, subject, html)

    activity_service.log_activity(
        db,
        ticket_id=ticket.id,
        activity_type=ActivityType.EMAIL_SENT,
        sender_type=_sender(actor_id),
        sender_id=actor_id,
        content=f"Escalation email sent to {len(recipients)} employees in {division_name}",
    )
    db.commit()

    if failed:
        logger.warning(
            "Escalation email for ticket %s: %s of %s deliveries failed",
            ticket_id,
            failed,
            len(recipients),
        )
    return NotificationDispatch(recipients=len(recipients), failed=failed)


async def notify_done_by_uic(
    db: Session, *, ticket_id: int, actor_id: int | None = None
) -> NotificationDispatch:
    """Tell the responsible CXC agent that the UIC division finished."""
    ticket = _load_ticket(db, ticket_id)
    if ticket is None:
        logger.warning("Completion notice skipped: ticket %s not found", ticket_id)
        return NotificationDispatch(skipped_reason="ticket_not_found")

    agent = ticket.responsible_employee
    if agent is None or not agent.email:
        logger.info("Completion notice skipped: ticket %s has no reachable CXC agent", ticket_id)
        return NotificationDispatch(skipped_reason="no_recipients")

    uic_division = ticket.policy.uic if ticket.policy else None
    division_name = uic_division.name if uic_division else "UIC division"

    subject, html = notification_templates.done_by_uic_email(
        ticket, agent.full_name, division_name
    )
    failed = await _send_all([agent], subject, html)

    activity_service.log_activity(
        db,
        ticket_id=ticket.id,
        activity_type=ActivityType.EMAIL_SENT,
        sender_type=_sender(actor_id),
        sender_id=actor_id,
        content=f"Completion email sent to CXC agent {agent.full_name}",
    )
    db.commit()
    return NotificationDispatch(recipients=1, failed=failed)
