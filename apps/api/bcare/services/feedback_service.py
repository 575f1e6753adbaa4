"""Customer feedback on closed tickets."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bcare.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from bcare.core.ticket_access import check_ticket_access
from bcare.db.enums import CustomerStatus
from bcare.db.models import Feedback
from bcare.schemas.auth import Actor
from bcare.schemas.feedback import FeedbackCreate, FeedbackUpdate
from bcare.services import ticket_service

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_feedback_for_ticket(db: Session, ticket_id: int) -> Feedback | None:
    return db.query(Feedback).filter(Feedback.ticket_id == ticket_id).first()


def submit_feedback(
    db: Session,
    actor: Actor,
    ticket_id: int,
    data: FeedbackCreate,
    *,
    now: datetime | None = None,
) -> Feedback:
    """
    Record the owning customer's rating of a CLOSED ticket.

    One feedback per ticket; a second submission is a conflict.
    """
    if not actor.is_customer:
        raise ForbiddenError("Only customers can submit feedback")

    ticket = ticket_service.get_ticket_or_404(db, ticket_id)
    if ticket.customer_id != actor.id:
        raise ForbiddenError("You can only rate your own tickets")
    if ticket.customer_status.code != CustomerStatus.CLOSED.value:
        raise ValidationError("Feedback can only be submitted for closed tickets")
    if get_feedback_for_ticket(db, ticket_id) is not None:
        raise ConflictError("Feedback already submitted for this ticket")

    now = now or _now_utc()
    feedback = Feedback(
        ticket_id=ticket.id,
        customer_id=actor.id,
        score=data.score,
        comment=data.comment,
        created_at=now,
        updated_at=now,
    )
    db.add(feedback)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Feedback already submitted for this ticket")
    db.refresh(feedback)
    logger.info("Feedback %s submitted for ticket %s (score=%s)", feedback.id, ticket_id, data.score)
    return feedback


def update_feedback_comment(
    db: Session,
    actor: Actor,
    feedback_id: int,
    data: FeedbackUpdate,
    *,
    now: datetime | None = None,
) -> Feedback:
    feedback = db.get(Feedback, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found")
    if not actor.is_customer or feedback.customer_id != actor.id:
        raise ForbiddenError("Only the customer who submitted this feedback can edit it")

    feedback.comment = data.comment
    feedback.updated_at = now or _now_utc()
    db.commit()
    db.refresh(feedback)
    return feedback


def get_ticket_feedback(db: Session, actor: Actor, ticket_id: int) -> Feedback:
    """Feedback for a ticket the actor can see (404 when none was given)."""
    ticket = ticket_service.get_ticket_or_404(db, ticket_id)
    check_ticket_access(ticket, actor)
    feedback = get_feedback_for_ticket(db, ticket_id)
    if feedback is None:
        raise NotFoundError("No feedback for this ticket")
    return feedback


def list_feedback(
    db: Session,
    actor: Actor,
    *,
    score: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Feedback], int]:
    if not actor.is_employee:
        raise ForbiddenError("Only employees can list feedback")

    query = db.query(Feedback)
    if score is not None:
        query = query.filter(Feedback.score == score)
    total = query.with_entities(func.count(Feedback.id)).scalar() or 0
    items = (
        query.order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total
