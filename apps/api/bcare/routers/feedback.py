"""Feedback edit and listing APIs (submission lives under /v1/tickets)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bcare.core.deps import get_current_actor, get_db, require_employee
from bcare.schemas.auth import Actor
from bcare.schemas.feedback import FeedbackListResponse, FeedbackRead, FeedbackUpdate
from bcare.services import feedback_service

router = APIRouter(prefix="/v1/feedback", tags=["feedback"])


@router.get("", response_model=FeedbackListResponse)
def list_feedback(
    score: Annotated[int | None, Query(ge=1, le=5)] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_employee),
) -> FeedbackListResponse:
    items, total = feedback_service.list_feedback(
        db, actor, score=score, limit=limit, offset=offset
    )
    return FeedbackListResponse(
        items=[FeedbackRead.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.patch("/{feedback_id}", response_model=FeedbackRead)
def update_feedback(
    feedback_id: int,
    data: FeedbackUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> FeedbackRead:
    """Edit the comment; the score cannot change."""
    feedback = feedback_service.update_feedback_comment(db, actor, feedback_id, data)
    return FeedbackRead.model_validate(feedback)
