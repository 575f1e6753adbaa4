"""Single-activity read API."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bcare.core.deps import get_current_actor, get_db
from bcare.routers.tickets import activity_read
from bcare.schemas.activity import ActivityRead
from bcare.schemas.auth import Actor
from bcare.services import activity_service, ticket_service

router = APIRouter(prefix="/v1/activities", tags=["activities"])


@router.get("/{activity_id}", response_model=ActivityRead)
def get_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> ActivityRead:
    """Return one activity if the caller can see its ticket."""
    activity = activity_service.get_activity(db, activity_id)
    ticket_service.get_ticket_for_actor(db, actor, activity.ticket_id)
    return activity_read(activity)
