"""Ticket lifecycle, activity and history APIs."""

from datetime import date
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.orm import Session

from bcare.core.deps import get_current_actor, get_db, require_employee
from bcare.core.rate_limit import limiter
from bcare.db.enums import ActivityType
from bcare.db.models import TicketActivity
from bcare.schemas.activity import (
    ActivityCreate,
    ActivityListResponse,
    ActivityRead,
    EmailHistoryResponse,
    StatusHistoryResponse,
)
from bcare.schemas.auth import Actor
from bcare.schemas.feedback import FeedbackCreate, FeedbackRead
from bcare.schemas.ticket import (
    CustomerTicketRead,
    TicketCreate,
    TicketDeleteResponse,
    TicketListResponse,
    TicketRead,
)
from bcare.services import activity_service, feedback_service, ticket_service

router = APIRouter(prefix="/v1/tickets", tags=["tickets"])

TicketView = TicketRead | CustomerTicketRead


def activity_read(activity: TicketActivity) -> ActivityRead:
    return ActivityRead(
        id=activity.id,
        ticket_id=activity.ticket_id,
        activity_type=activity.activity_type.code,
        sender_type=activity.sender_type.code,
        sender_id=activity.sender_id,
        content=activity.content,
        activity_time=activity.activity_time,
    )


# =============================================================================
# Tickets
# =============================================================================


@router.post("", response_model=TicketView, status_code=201)
@limiter.limit("30/minute")
def create_ticket(
    request: Request,
    data: TicketCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketView:
    """Create a ticket; agents may create it directly ESCALATED or CLOSED."""
    ticket = ticket_service.create_ticket(db, actor, data)
    return ticket_service.build_ticket_view(ticket, actor)


@router.get("", response_model=TicketListResponse)
def list_tickets(
    customer_status: str | None = None,
    employee_status: str | None = None,
    priority_id: int | None = None,
    issue_channel_id: int | None = None,
    complaint_id: int | None = None,
    customer_id: int | None = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketListResponse:
    """List tickets visible to the caller, newest first."""
    page = ticket_service.list_tickets(
        db,
        actor,
        customer_status=customer_status,
        employee_status=employee_status,
        priority_id=priority_id,
        issue_channel_id=issue_channel_id,
        complaint_id=complaint_id,
        customer_id=customer_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return TicketListResponse(
        items=[ticket_service.build_ticket_view(ticket, actor) for ticket in page.items],
        total=page.total,
        limit=limit,
        offset=offset,
    )


@router.get("/{ticket_id}", response_model=TicketView)
def get_ticket(
    ticket_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketView:
    ticket = ticket_service.get_ticket_for_actor(db, actor, ticket_id)
    return ticket_service.build_ticket_view(ticket, actor)


@router.patch("/{ticket_id}", response_model=TicketRead)
def update_ticket(
    ticket_id: int,
    payload: Annotated[dict[str, Any], Body()],
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketRead:
    """Apply one action (HANDLEDCXC, ESCALATED, CLOSED, DECLINED, DONE_BY_UIC) or a note."""
    ticket = ticket_service.update_ticket(db, actor, ticket_id, payload)
    return ticket_service.build_ticket_view(ticket, actor)


@router.delete("/{ticket_id}", response_model=TicketDeleteResponse)
def delete_ticket(
    ticket_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketDeleteResponse:
    """Soft delete; terminal tickets cannot be deleted."""
    ticket = ticket_service.delete_ticket(db, actor, ticket_id)
    return TicketDeleteResponse(
        message="Ticket deleted successfully",
        ticket_id=ticket.id,
        ticket_number=ticket.ticket_number,
        delete_at=ticket.delete_at,
        delete_by=ticket.delete_by,
    )


# =============================================================================
# Activities and history
# =============================================================================


@router.get("/{ticket_id}/activities", response_model=ActivityListResponse)
def list_ticket_activities(
    ticket_id: int,
    activity_type: Literal["COMMENT", "STATUS_CHANGE", "ATTACHMENT", "DELETE", "EMAIL_SENT"]
    | None = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ActivityListResponse:
    ticket_service.get_ticket_for_actor(db, actor, ticket_id)
    items, total = activity_service.list_activities(
        db,
        ticket_id=ticket_id,
        activity_type=ActivityType(activity_type) if activity_type else None,
        limit=limit,
        offset=offset,
    )
    return ActivityListResponse(
        items=[activity_read(activity) for activity in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/{ticket_id}/activities", response_model=ActivityRead, status_code=201)
def add_ticket_activity(
    ticket_id: int,
    data: ActivityCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ActivityRead:
    """Add a comment or attachment marker; this never changes status."""
    ticket = ticket_service.get_ticket_for_actor(db, actor, ticket_id)
    activity = activity_service.add_activity(
        db,
        ticket=ticket,
        actor=actor,
        activity_type=ActivityType(data.activity_type),
        content=data.content,
    )
    return activity_read(activity)


@router.get("/{ticket_id}/status-history", response_model=StatusHistoryResponse)
def get_status_history(
    ticket_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> StatusHistoryResponse:
    """Status transitions, oldest first."""
    ticket = ticket_service.get_ticket_for_actor(db, actor, ticket_id)
    return StatusHistoryResponse(
        ticket_id=ticket.id,
        ticket_number=ticket.ticket_number,
        items=activity_service.get_status_history(db, ticket.id),
    )


@router.get("/{ticket_id}/email-history", response_model=EmailHistoryResponse)
def get_email_history(
    ticket_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_employee),
) -> EmailHistoryResponse:
    ticket = ticket_service.get_ticket_for_actor(db, actor, ticket_id)
    return EmailHistoryResponse(
        ticket_id=ticket.id,
        ticket_number=ticket.ticket_number,
        items=[activity_read(a) for a in activity_service.get_email_history(db, ticket.id)],
    )


# =============================================================================
# Feedback
# =============================================================================


@router.post("/{ticket_id}/feedback", response_model=FeedbackRead, status_code=201)
def submit_feedback(
    ticket_id: int,
    data: FeedbackCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FeedbackRead:
    feedback = feedback_service.submit_feedback(db, actor, ticket_id, data)
    return FeedbackRead.model_validate(feedback)


@router.get("/{ticket_id}/feedback", response_model=FeedbackRead)
def get_ticket_feedback(
    ticket_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FeedbackRead:
    feedback = feedback_service.get_ticket_feedback(db, actor, ticket_id)
    return FeedbackRead.model_validate(feedback)
