"""Append-only ticket activity log and the history views derived from it.

Status changes are stored twice: as a STATUS_CHANGE activity whose text
is generated from the transition, and as a structured TicketStatusEvent
linked to that activity. History reads the structured rows; text parsing
is kept only for STATUS_CHANGE activities that predate the event table.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from bcare.core.exceptions import NotFoundError, ValidationError
from bcare.db.enums import ActivityType, SenderType, StatusEventAction
from bcare.db.models import (
    ActivityTypeRef,
    SenderTypeRef,
    Ticket,
    TicketActivity,
    TicketStatusEvent,
)
from bcare.schemas.activity import StatusHistoryEntry
from bcare.schemas.auth import Actor
from bcare.services import reference_service
from bcare.services.policy_service import as_utc

logger = logging.getLogger(__name__)

_CUSTOMER_STATUS_RE = re.compile(r"customer status to (\w+)")
_EMPLOYEE_STATUS_RE = re.compile(r"employee status to (\w+)")

_CREATION_PREFIXES = {
    StatusEventAction.CREATED: "Initial status set",
    StatusEventAction.ESCALATED: "Ticket created and escalated",
    StatusEventAction.CLOSED: "Ticket created and closed",
}

FREE_FORM_TYPES = (ActivityType.COMMENT, ActivityType.ATTACHMENT)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def sender_type_for(actor: Actor | None) -> SenderType:
    if actor is None:
        return SenderType.SYSTEM
    return SenderType.CUSTOMER if actor.is_customer else SenderType.EMPLOYEE


# =============================================================================
# Writes
# =============================================================================


def log_activity(
    db: Session,
    *,
    ticket_id: int,
    activity_type: ActivityType,
    sender_type: SenderType,
    sender_id: int | None,
    content: str,
    at: datetime | None = None,
) -> TicketActivity:
    """Append one activity row. Flushes but does not commit."""
    activity = TicketActivity(
        ticket_id=ticket_id,
        activity_type_id=reference_service.id_for_code(db, ActivityTypeRef, activity_type.value),
        sender_type_id=reference_service.id_for_code(db, SenderTypeRef, sender_type.value),
        sender_id=sender_id,
        content=content,
        activity_time=at or _now_utc(),
    )
    db.add(activity)
    db.flush()
    return activity


def status_change_text(
    *,
    customer_status: str,
    employee_status: str,
    creation: StatusEventAction | None = None,
    trigger_action: str | None = None,
) -> str:
    """Human-readable STATUS_CHANGE content, generated from the transition."""
    if creation is not None:
        prefix = _CREATION_PREFIXES[creation]
    else:
        prefix = f"Status updated via {trigger_action or 'update'}"
    return f"{prefix}: customer status to {customer_status}, employee status to {employee_status}"


def record_status_change(
    db: Session,
    *,
    ticket: Ticket,
    action_type: StatusEventAction,
    trigger_action: str | None,
    from_customer_status: str | None,
    to_customer_status: str,
    from_employee_status: str | None,
    to_employee_status: str,
    actor: Actor,
    at: datetime,
    is_creation: bool = False,
) -> TicketStatusEvent:
    """Write the STATUS_CHANGE activity and its structured event together."""
    content = status_change_text(
        customer_status=to_customer_status,
        employee_status=to_employee_status,
        creation=action_type if is_creation else None,
        trigger_action=trigger_action,
    )
    sender_type = sender_type_for(actor)
    activity = log_activity(
        db,
        ticket_id=ticket.id,
        activity_type=ActivityType.STATUS_CHANGE,
        sender_type=sender_type,
        sender_id=actor.id,
        content=content,
        at=at,
    )
    event = TicketStatusEvent(
        ticket_id=ticket.id,
        activity_id=activity.id,
        action_type=action_type.value,
        trigger_action=trigger_action,
        from_customer_status=from_customer_status,
        to_customer_status=to_customer_status,
        from_employee_status=from_employee_status,
        to_employee_status=to_employee_status,
        actor_type=sender_type.value,
        actor_id=actor.id,
        created_at=at,
    )
    db.add(event)
    db.flush()
    return event


def add_activity(
    db: Session,
    *,
    ticket: Ticket,
    actor: Actor,
    activity_type: ActivityType,
    content: str,
) -> TicketActivity:
    """Add a free-form comment or attachment marker (not a state transition)."""
    if activity_type not in FREE_FORM_TYPES:
        raise ValidationError("Only COMMENT and ATTACHMENT activities can be added directly")
    activity = log_activity(
        db,
        ticket_id=ticket.id,
        activity_type=activity_type,
        sender_type=sender_type_for(actor),
        sender_id=actor.id,
        content=content,
    )
    db.commit()
    db.refresh(activity)
    return activity


# =============================================================================
# Reads
# =============================================================================


def list_activities(
    db: Session,
    *,
    ticket_id: int,
    activity_type: ActivityType | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[TicketActivity], int]:
    """Activities for a ticket, newest first, with total count."""
    query = db.query(TicketActivity).filter(TicketActivity.ticket_id == ticket_id)
    if activity_type is not None:
        query = query.join(ActivityTypeRef).filter(ActivityTypeRef.code == activity_type.value)
    total = query.with_entities(func.count(TicketActivity.id)).scalar() or 0
    items = (
        query.order_by(TicketActivity.activity_time.desc(), TicketActivity.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def get_activity(db: Session, activity_id: int) -> TicketActivity:
    activity = db.get(TicketActivity, activity_id)
    if activity is None:
        raise NotFoundError("Activity not found")
    return activity


def _activities_of_type(
    db: Session, ticket_id: int, activity_type: ActivityType
) -> list[TicketActivity]:
    return (
        db.query(TicketActivity)
        .join(ActivityTypeRef)
        .filter(
            TicketActivity.ticket_id == ticket_id,
            ActivityTypeRef.code == activity_type.value,
        )
        .order_by(TicketActivity.activity_time, TicketActivity.id)
        .all()
    )


def classify_status_text(content: str) -> StatusEventAction:
    """Classify a legacy STATUS_CHANGE activity by the wording before its colon."""
    if "Initial status set" in content:
        return StatusEventAction.CREATED
    lead = content.split(":", 1)[0].lower()
    if "escalated" in lead:
        return StatusEventAction.ESCALATED
    if "closed" in lead:
        return StatusEventAction.CLOSED
    return StatusEventAction.UPDATED


def parse_status_text(content: str) -> tuple[str | None, str | None]:
    """Extract (customer_status, employee_status) codes from activity text."""
    customer = _CUSTOMER_STATUS_RE.search(content)
    employee = _EMPLOYEE_STATUS_RE.search(content)
    return (
        customer.group(1) if customer else None,
        employee.group(1) if employee else None,
    )


def get_status_history(db: Session, ticket_id: int) -> list[StatusHistoryEntry]:
    """
    Status transitions for a ticket, oldest first.

    Structured events are authoritative. STATUS_CHANGE activities with no
    linked event are reconstructed from their text; a missing code there
    carries over from the previous entry.
    """
    events = (
        db.query(TicketStatusEvent)
        .filter(TicketStatusEvent.ticket_id == ticket_id)
        .all()
    )
    linked_activity_ids = {event.activity_id for event in events if event.activity_id}

    rows: list[tuple[datetime, int, StatusHistoryEntry]] = []
    for event in events:
        rows.append(
            (
                as_utc(event.created_at),
                event.activity_id or 0,
                StatusHistoryEntry(
                    activity_id=event.activity_id,
                    action_type=event.action_type,
                    trigger_action=event.trigger_action,
                    from_customer_status=event.from_customer_status,
                    to_customer_status=event.to_customer_status,
                    from_employee_status=event.from_employee_status,
                    to_employee_status=event.to_employee_status,
                    actor_type=event.actor_type,
                    actor_id=event.actor_id,
                    content=event.activity.content if event.activity else None,
                    timestamp=event.created_at,
                ),
            )
        )

    legacy_count = 0
    for activity in _activities_of_type(db, ticket_id, ActivityType.STATUS_CHANGE):
        if activity.id in linked_activity_ids:
            continue
        legacy_count += 1
        customer_status, employee_status = parse_status_text(activity.content)
        rows.append(
            (
                as_utc(activity.activity_time),
                activity.id,
                StatusHistoryEntry(
                    activity_id=activity.id,
                    action_type=classify_status_text(activity.content).value,
                    trigger_action=None,
                    from_customer_status=None,
                    to_customer_status=customer_status,
                    from_employee_status=None,
                    to_employee_status=employee_status,
                    actor_type=activity.sender_type.code,
                    actor_id=activity.sender_id,
                    content=activity.content,
                    timestamp=activity.activity_time,
                ),
            )
        )
    if legacy_count:
        logger.info(
            "Reconstructed %s legacy status entries from activity text for ticket %s",
            legacy_count,
            ticket_id,
        )

    rows.sort(key=lambda row: (row[0], row[1]))
    history = [entry for _, _, entry in rows]

    previous: StatusHistoryEntry | None = None
    for entry in history:
        if previous is not None:
            if entry.from_customer_status is None:
                entry.from_customer_status = previous.to_customer_status
            if entry.from_employee_status is None:
                entry.from_employee_status = previous.to_employee_status
            if entry.to_customer_status is None:
                entry.to_customer_status = previous.to_customer_status
            if entry.to_employee_status is None:
                entry.to_employee_status = previous.to_employee_status
        previous = entry
    return history


def get_email_history(db: Session, ticket_id: int) -> list[TicketActivity]:
    """EMAIL_SENT activities for a ticket, oldest first."""
    return _activities_of_type(db, ticket_id, ActivityType.EMAIL_SENT)

