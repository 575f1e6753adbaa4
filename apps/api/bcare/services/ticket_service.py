"""Ticket lifecycle: creation, action-driven transitions, soft delete, reads.

Every transition updates only the fields its command type carries,
appends exactly one STATUS_CHANGE activity (with its structured event),
and enqueues notifier jobs in the same commit. Notification delivery
happens later in the worker and can never fail the transition.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bcare.core.config import settings
from bcare.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from bcare.core.ticket_access import (
    check_can_create,
    check_can_delete,
    check_can_update,
    check_ticket_access,
    visible_tickets_clause,
)
from bcare.db.enums import (
    TERMINAL_EMPLOYEE_STATUSES,
    ActivityType,
    CustomerStatus,
    EmployeeStatus,
    JobType,
    Priority,
    Source,
    StatusEventAction,
    TicketAction,
)
from bcare.db.models import (
    Customer,
    CustomerStatusRef,
    Employee,
    EmployeeStatusRef,
    PriorityRef,
    SourceRef,
    Ticket,
)
from bcare.schemas.auth import Actor
from bcare.schemas.ticket import (
    CodeName,
    CustomerTicketRead,
    DivisionNote,
    PartySummary,
    PolicySummary,
    SlaInfoRead,
    TicketCommand,
    TicketCreate,
    TicketRead,
    UpdateNotes,
)
from bcare.services import (
    activity_service,
    job_service,
    policy_service,
    reference_service,
    ticket_number_service,
)

logger = logging.getLogger(__name__)

_command_adapter: TypeAdapter = TypeAdapter(TicketCommand)

# action -> (customer status, employee status)
TRANSITIONS: dict[TicketAction, tuple[CustomerStatus, EmployeeStatus]] = {
    TicketAction.HANDLEDCXC: (CustomerStatus.VERIFYING, EmployeeStatus.HANDLEDCXC),
    TicketAction.ESCALATED: (CustomerStatus.PROCESSING, EmployeeStatus.ESCALATED),
    TicketAction.CLOSED: (CustomerStatus.CLOSED, EmployeeStatus.CLOSED),
    TicketAction.DECLINED: (CustomerStatus.DECLINED, EmployeeStatus.DECLINED),
    TicketAction.DONE_BY_UIC: (CustomerStatus.PROCESSING, EmployeeStatus.DONE_BY_UIC),
}

ACTION_COMMENTS: dict[TicketAction, str] = {
    TicketAction.HANDLEDCXC: "Ticket handled by CXC agent",
    TicketAction.ESCALATED: "Ticket escalated to specialist division",
    TicketAction.CLOSED: "Ticket closed by CXC agent",
    TicketAction.DECLINED: "Ticket declined by CXC agent",
    TicketAction.DONE_BY_UIC: "Ticket completed by UIC division",
}

ACTION_EVENT_TYPES: dict[TicketAction, StatusEventAction] = {
    TicketAction.ESCALATED: StatusEventAction.ESCALATED,
    TicketAction.CLOSED: StatusEventAction.CLOSED,
}

_CXC_ACTIONS = {
    TicketAction.HANDLEDCXC,
    TicketAction.ESCALATED,
    TicketAction.CLOSED,
    TicketAction.DECLINED,
}

_NOTIFY_JOBS: dict[TicketAction, JobType] = {
    TicketAction.ESCALATED: JobType.ESCALATION_EMAIL,
    TicketAction.DONE_BY_UIC: JobType.DONE_BY_UIC_EMAIL,
}


@dataclass(frozen=True)
class TicketListPage:
    """Offset-paginated ticket list."""

    items: list[Ticket]
    total: int


# =============================================================================
# Helpers
# =============================================================================


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _customer_status_id(db: Session, status: CustomerStatus) -> int:
    return reference_service.id_for_code(db, CustomerStatusRef, status.value)


def _employee_status_id(db: Session, status: EmployeeStatus) -> int:
    return reference_service.id_for_code(db, EmployeeStatusRef, status.value)


def is_terminal(ticket: Ticket) -> bool:
    return ticket.employee_status.code in TERMINAL_EMPLOYEE_STATUSES


def _append_division_note(ticket: Ticket, note: str, author_id: int, now: datetime) -> None:
    # Reassign so the JSON column is flagged dirty
    ticket.division_notes = [
        *(ticket.division_notes or []),
        {"note": note, "author_id": author_id, "created_at": now.isoformat()},
    ]


def _enqueue_notification(db: Session, job_type: JobType, ticket: Ticket, actor: Actor) -> None:
    job_service.enqueue_ticket_notification(db, job_type, ticket_id=ticket.id, actor_id=actor.id)


def parse_ticket_command(payload: dict) -> TicketCommand:
    """
    Validate a PATCH body into exactly one command type.

    Unknown actions, fields outside the action's whitelist, or an empty
    note-only body are rejected with ValidationError.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    if not payload.get("action") and not payload.get("division_notes"):
        raise ValidationError("No valid update data provided")
    try:
        return _command_adapter.validate_python(payload)
    except PydanticValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ValidationError(f"Invalid update: {details}") from exc


# =============================================================================
# Lookups
# =============================================================================


def get_ticket(db: Session, ticket_id: int, *, include_deleted: bool = False) -> Ticket | None:
    query = db.query(Ticket).filter(Ticket.id == ticket_id)
    if not include_deleted:
        query = query.filter(Ticket.delete_at.is_(None))
    return query.first()


def get_ticket_or_404(db: Session, ticket_id: int, *, include_deleted: bool = False) -> Ticket:
    ticket = get_ticket(db, ticket_id, include_deleted=include_deleted)
    if ticket is None:
        raise NotFoundError("Ticket not found")
    return ticket


def get_ticket_for_actor(db: Session, actor: Actor, ticket_id: int) -> Ticket:
    """Ticket the actor is allowed to read (404 unknown, 403 not theirs)."""
    ticket = get_ticket_or_404(db, ticket_id)
    check_ticket_access(ticket, actor)
    return ticket


# =============================================================================
# Create
# =============================================================================


def create_ticket(
    db: Session,
    actor: Actor,
    data: TicketCreate,
    *,
    now: datetime | None = None,
) -> Ticket:
    """
    Create a ticket for a customer.

    Customers create for themselves (source CHATBOT). CXC agents create on
    behalf of a customer and may create directly ESCALATED or CLOSED.
    """
    check_can_create(actor, customer_id=data.customer_id, action=data.action)
    now = now or _now_utc()

    if actor.is_customer:
        customer_id = actor.id
        source_id = reference_service.id_for_code(db, SourceRef, Source.CHATBOT.value)
    else:
        if data.customer_id is None:
            raise ValidationError("customer_id is required when an employee creates a ticket")
        customer_id = data.customer_id
        source_id = data.intake_source_id or reference_service.id_for_code(
            db, SourceRef, Source.CONTACT_CENTER.value
        )

    customer = db.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")

    reference_service.validate_ticket_references(
        db,
        complaint_id=data.complaint_id,
        issue_channel_id=data.issue_channel_id,
        priority_id=data.priority_id,
        intake_source_id=source_id,
        terminal_id=data.terminal_id,
    )
    priority_id = data.priority_id or reference_service.id_for_code(
        db, PriorityRef, Priority.REGULAR.value
    )

    policy = policy_service.resolve_policy(
        db, complaint_id=data.complaint_id, channel_id=data.issue_channel_id
    )
    committed_due_at = policy_service.calculate_sla_due_date(
        policy_service.sla_days_for(policy), now=now
    )

    action = TicketAction(data.action) if data.action else None
    if action == TicketAction.ESCALATED:
        customer_status, employee_status = TRANSITIONS[TicketAction.ESCALATED]
        event_type = StatusEventAction.ESCALATED
    elif action == TicketAction.CLOSED:
        customer_status, employee_status = TRANSITIONS[TicketAction.CLOSED]
        event_type = StatusEventAction.CLOSED
    else:
        customer_status, employee_status = CustomerStatus.ACCEPTED, EmployeeStatus.OPEN
        event_type = StatusEventAction.CREATED

    customer_status_id = _customer_status_id(db, customer_status)
    employee_status_id = _employee_status_id(db, employee_status)

    ticket: Ticket | None = None
    for attempt in range(1, settings.TICKET_NUMBER_MAX_RETRIES + 1):
        ticket_number = ticket_number_service.generate_ticket_number(db, now)
        ticket = Ticket(
            ticket_number=ticket_number,
            description=data.description,
            customer_id=customer_id,
            responsible_employee_id=actor.id if action else None,
            customer_status_id=customer_status_id,
            employee_status_id=employee_status_id,
            priority_id=priority_id,
            issue_channel_id=data.issue_channel_id,
            intake_source_id=source_id,
            complaint_id=data.complaint_id,
            policy_id=policy.id if policy else None,
            terminal_id=data.terminal_id,
            transaction_date=data.transaction_date,
            amount=data.amount,
            record=data.record,
            solution=data.solution,
            division_notes=[],
            committed_due_at=committed_due_at,
            closed_time=now if employee_status.value in TERMINAL_EMPLOYEE_STATUSES else None,
            created_at=now,
            updated_at=now,
        )
        db.add(ticket)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            taken = (
                db.query(Ticket.id).filter(Ticket.ticket_number == ticket_number).first()
            )
            if taken is None:
                raise
            logger.warning(
                "Ticket number collision on %s (attempt %s/%s); regenerating",
                ticket_number,
                attempt,
                settings.TICKET_NUMBER_MAX_RETRIES,
            )
            ticket = None
            continue
        break

    if ticket is None:
        raise ConflictError("Could not allocate a unique ticket number, please retry")

    sender_type = activity_service.sender_type_for(actor)
    if actor.is_customer:
        created_text = f"Ticket created: {data.description}"
    else:
        created_text = (
            f"Ticket created by employee for customer {customer.full_name}: {data.description}"
        )
    activity_service.log_activity(
        db,
        ticket_id=ticket.id,
        activity_type=ActivityType.COMMENT,
        sender_type=sender_type,
        sender_id=actor.id,
        content=created_text,
        at=now,
    )
    activity_service.record_status_change(
        db,
        ticket=ticket,
        action_type=event_type,
        trigger_action=action.value if action else None,
        from_customer_status=None,
        to_customer_status=customer_status.value,
        from_employee_status=None,
        to_employee_status=employee_status.value,
        actor=actor,
        at=now,
        is_creation=True,
    )

    if action == TicketAction.ESCALATED:
        _enqueue_notification(db, JobType.ESCALATION_EMAIL, ticket, actor)

    db.commit()
    db.refresh(ticket)
    logger.info(
        "Ticket %s created (id=%s, policy=%s, status=%s/%s)",
        ticket.ticket_number,
        ticket.id,
        ticket.policy_id,
        customer_status.value,
        employee_status.value,
    )
    return ticket


# =============================================================================
# Transitions
# =============================================================================


def apply_transition(
    db: Session,
    actor: Actor,
    ticket_id: int,
    command: TicketCommand,
    *,
    now: datetime | None = None,
) -> Ticket:
    """
    Apply one update command to a ticket.

    Authorization runs before any field is touched; a rejected command
    leaves the ticket unchanged.
    """
    if actor.is_customer:
        raise ForbiddenError("Customers cannot update tickets")

    ticket = get_ticket_or_404(db, ticket_id)
    action = TicketAction(command.action) if command.action else None
    check_can_update(ticket, actor, action)

    if is_terminal(ticket):
        raise ValidationError(
            f"Ticket is {ticket.employee_status.code}; no further updates are allowed"
        )

    now = now or _now_utc()
    sender_type = activity_service.sender_type_for(actor)

    if isinstance(command, UpdateNotes):
        _append_division_note(ticket, command.division_notes, actor.id, now)
        ticket.updated_at = now
        activity_service.log_activity(
            db,
            ticket_id=ticket.id,
            activity_type=ActivityType.COMMENT,
            sender_type=sender_type,
            sender_id=actor.id,
            content="Division notes updated",
            at=now,
        )
        db.commit()
        db.refresh(ticket)
        return ticket

    fields = command.model_dump(
        exclude_unset=True, exclude_none=True, exclude={"action", "division_notes"}
    )
    reference_service.validate_ticket_references(
        db,
        complaint_id=fields.get("complaint_id"),
        issue_channel_id=fields.get("issue_channel_id"),
        priority_id=fields.get("priority_id"),
        intake_source_id=fields.get("intake_source_id"),
        terminal_id=fields.get("terminal_id"),
    )
    for name, value in fields.items():
        setattr(ticket, name, value)
    if command.division_notes:
        _append_division_note(ticket, command.division_notes, actor.id, now)

    from_customer_status = ticket.customer_status.code
    from_employee_status = ticket.employee_status.code
    to_customer_status, to_employee_status = TRANSITIONS[action]
    ticket.customer_status_id = _customer_status_id(db, to_customer_status)
    ticket.employee_status_id = _employee_status_id(db, to_employee_status)

    # HANDLEDCXC takes the ticket over; other CXC actions only fill an empty slot
    if action == TicketAction.HANDLEDCXC or (
        action in _CXC_ACTIONS and ticket.responsible_employee_id is None
    ):
        ticket.responsible_employee_id = actor.id

    if action == TicketAction.ESCALATED:
        _refresh_policy_on_escalation(db, ticket, now)

    if to_employee_status.value in TERMINAL_EMPLOYEE_STATUSES and ticket.closed_time is None:
        ticket.closed_time = now
    ticket.updated_at = now

    activity_service.log_activity(
        db,
        ticket_id=ticket.id,
        activity_type=ActivityType.COMMENT,
        sender_type=sender_type,
        sender_id=actor.id,
        content=ACTION_COMMENTS[action],
        at=now,
    )
    activity_service.record_status_change(
        db,
        ticket=ticket,
        action_type=ACTION_EVENT_TYPES.get(action, StatusEventAction.UPDATED),
        trigger_action=action.value,
        from_customer_status=from_customer_status,
        to_customer_status=to_customer_status.value,
        from_employee_status=from_employee_status,
        to_employee_status=to_employee_status.value,
        actor=actor,
        at=now,
    )

    job_type = _NOTIFY_JOBS.get(action)
    if job_type is not None:
        _enqueue_notification(db, job_type, ticket, actor)

    db.commit()
    db.refresh(ticket)
    logger.info(
        "Ticket %s transitioned via %s: %s/%s -> %s/%s",
        ticket.id,
        action.value,
        from_customer_status,
        from_employee_status,
        to_customer_status.value,
        to_employee_status.value,
    )
    return ticket


def _refresh_policy_on_escalation(db: Session, ticket: Ticket, now: datetime) -> None:
    """Re-resolve the policy; a changed policy restarts the SLA clock."""
    policy = policy_service.resolve_policy(
        db, complaint_id=ticket.complaint_id, channel_id=ticket.issue_channel_id
    )
    new_policy_id = policy.id if policy else None
    if new_policy_id == ticket.policy_id:
        return
    logger.info(
        "Ticket %s policy changed on escalation: %s -> %s",
        ticket.id,
        ticket.policy_id,
        new_policy_id,
    )
    ticket.policy_id = new_policy_id
    ticket.committed_due_at = policy_service.calculate_sla_due_date(
        policy_service.sla_days_for(policy), now=now
    )


def update_ticket(
    db: Session,
    actor: Actor,
    ticket_id: int,
    payload: dict,
    *,
    now: datetime | None = None,
) -> Ticket:
    """Parse a raw PATCH body and apply it."""
    if actor.is_customer:
        raise ForbiddenError("Customers cannot update tickets")
    command = parse_ticket_command(payload)
    return apply_transition(db, actor, ticket_id, command, now=now)


# =============================================================================
# Soft delete
# =============================================================================


def delete_ticket(
    db: Session,
    actor: Actor,
    ticket_id: int,
    *,
    now: datetime | None = None,
) -> Ticket:
    """Soft-delete a non-terminal ticket (CXC agents only)."""
    check_can_delete(actor)
    ticket = get_ticket_or_404(db, ticket_id, include_deleted=True)
    if ticket.delete_at is not None:
        raise ConflictError("Ticket already deleted")
    if is_terminal(ticket):
        raise ValidationError(f"Cannot delete a ticket with status {ticket.employee_status.code}")

    now = now or _now_utc()
    ticket.delete_at = now
    ticket.delete_by = actor.id
    ticket.updated_at = now

    employee = db.get(Employee, actor.id)
    deleted_by = employee.full_name if employee else f"employee {actor.id}"
    activity_service.log_activity(
        db,
        ticket_id=ticket.id,
        activity_type=ActivityType.DELETE,
        sender_type=activity_service.sender_type_for(actor),
        sender_id=actor.id,
        content=f"Ticket deleted by {deleted_by}",
        at=now,
    )
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket %s soft-deleted by employee %s", ticket.id, actor.id)
    return ticket


# =============================================================================
# Listing
# =============================================================================


def list_tickets(
    db: Session,
    actor: Actor,
    *,
    customer_status: str | None = None,
    employee_status: str | None = None,
    priority_id: int | None = None,
    issue_channel_id: int | None = None,
    complaint_id: int | None = None,
    customer_id: int | None = None,
    search: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 20,
    offset: int = 0,
) -> TicketListPage:
    """Role-filtered ticket list, newest first."""
    query = db.query(Ticket).filter(
        Ticket.delete_at.is_(None),
        visible_tickets_clause(actor),
    )

    if customer_status:
        query = query.filter(
            Ticket.customer_status.has(CustomerStatusRef.code == customer_status.upper())
        )
    if employee_status:
        if actor.is_customer:
            raise ForbiddenError("Customers cannot filter by employee status")
        query = query.filter(
            Ticket.employee_status.has(EmployeeStatusRef.code == employee_status.upper())
        )
    if priority_id is not None:
        query = query.filter(Ticket.priority_id == priority_id)
    if issue_channel_id is not None:
        query = query.filter(Ticket.issue_channel_id == issue_channel_id)
    if complaint_id is not None:
        query = query.filter(Ticket.complaint_id == complaint_id)
    if customer_id is not None and not actor.is_customer:
        query = query.filter(Ticket.customer_id == customer_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(Ticket.ticket_number.ilike(pattern), Ticket.description.ilike(pattern))
        )
    if date_from:
        query = query.filter(
            Ticket.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc)
        )
    if date_to:
        end = datetime.combine(date_to, time.min, tzinfo=timezone.utc) + timedelta(days=1)
        query = query.filter(Ticket.created_at < end)

    total = query.with_entities(func.count(Ticket.id)).scalar() or 0
    items = (
        query.order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return TicketListPage(items=items, total=total)



# =============================================================================
# Read views
# =============================================================================


def _code_name(row) -> CodeName:
    return CodeName(id=row.id, code=row.code, name=row.name)


def _party(row: Customer | Employee | None) -> PartySummary | None:
    if row is None:
        return None
    return PartySummary(id=row.id, full_name=row.full_name, email=row.email)


def _division_notes(raw: list | None) -> list[DivisionNote]:
    notes = []
    for entry in raw or []:
        # Rows written before notes became a list hold plain strings
        if isinstance(entry, str):
            notes.append(DivisionNote(note=entry))
        else:
            notes.append(DivisionNote(**entry))
    return notes


def build_ticket_view(
    ticket: Ticket, actor: Actor, *, now: datetime | None = None
) -> TicketRead | CustomerTicketRead:
    """Enriched ticket response; customers get the reduced view."""
    sla = policy_service.calculate_sla_info(ticket.committed_due_at, now=now)
    common = dict(
        ticket_id=ticket.id,
        ticket_number=ticket.ticket_number,
        description=ticket.description,
        customer_status=_code_name(ticket.customer_status),
        priority=_code_name(ticket.priority),
        issue_channel=_code_name(ticket.issue_channel),
        complaint=CodeName(
            id=ticket.complaint.id,
            code=ticket.complaint.complaint_code,
            name=ticket.complaint.complaint_name,
        ),
        terminal_id=ticket.terminal_id,
        transaction_date=ticket.transaction_date,
        amount=ticket.amount,
        reason=ticket.reason,
        solution=ticket.solution,
        committed_due_at=policy_service.as_utc(ticket.committed_due_at),
        closed_time=policy_service.as_utc(ticket.closed_time),
        created_at=policy_service.as_utc(ticket.created_at),
        updated_at=policy_service.as_utc(ticket.updated_at),
        sla_info=SlaInfoRead(**asdict(sla)),
    )
    if actor.is_customer:
        return CustomerTicketRead(**common)

    policy = ticket.policy
    policy_summary = None
    if policy is not None:
        policy_summary = PolicySummary(
            id=policy.id,
            service=policy.service,
            sla_days=policy_service.sla_days_for(policy),
            uic_id=policy.uic_id,
            uic_name=policy.uic.name if policy.uic else None,
            description=policy.description,
        )
    return TicketRead(
        **common,
        employee_status=_code_name(ticket.employee_status),
        intake_source=_code_name(ticket.intake_source),
        customer=_party(ticket.customer),
        responsible_employee=_party(ticket.responsible_employee),
        policy=policy_summary,
        record=ticket.record,
        division_notes=_division_notes(ticket.division_notes),
    )
