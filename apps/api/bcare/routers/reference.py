"""Reference data API (any authenticated actor)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bcare.core.deps import get_current_actor, get_db
from bcare.core.exceptions import NotFoundError
from bcare.schemas.reference import (
    ComplaintCategoryRead,
    LookupRead,
    PolicyRead,
    ResolvedPolicyRead,
    TerminalRead,
)
from bcare.services import policy_service, reference_service

router = APIRouter(
    prefix="/v1/reference",
    tags=["reference"],
    dependencies=[Depends(get_current_actor)],
)


@router.get("/channels", response_model=list[LookupRead])
def list_channels(db: Session = Depends(get_db)):
    return reference_service.list_channels(db)


@router.get("/complaint-categories", response_model=list[ComplaintCategoryRead])
def list_complaint_categories(db: Session = Depends(get_db)):
    return reference_service.list_complaint_categories(db)


@router.get("/priorities", response_model=list[LookupRead])
def list_priorities(db: Session = Depends(get_db)):
    return reference_service.list_priorities(db)


@router.get("/sources", response_model=list[LookupRead])
def list_sources(db: Session = Depends(get_db)):
    return reference_service.list_sources(db)


@router.get("/divisions", response_model=list[LookupRead])
def list_divisions(db: Session = Depends(get_db)):
    return reference_service.list_divisions(db)


@router.get("/terminals", response_model=list[TerminalRead])
def list_terminals(channel_id: int | None = None, db: Session = Depends(get_db)):
    return reference_service.list_terminals(db, channel_id=channel_id)


@router.get("/policies", response_model=list[PolicyRead])
def list_policies(
    complaint_id: int | None = None,
    channel_id: int | None = None,
    db: Session = Depends(get_db),
):
    return reference_service.list_policies(db, complaint_id=complaint_id, channel_id=channel_id)


@router.get("/policies/resolve", response_model=ResolvedPolicyRead)
def resolve_policy(
    complaint_id: int,
    channel_id: int | None = None,
    db: Session = Depends(get_db),
) -> ResolvedPolicyRead:
    """The policy a new ticket with this complaint and channel would get."""
    policy = policy_service.resolve_policy(db, complaint_id=complaint_id, channel_id=channel_id)
    if policy is None:
        raise NotFoundError("No complaint policy matches")
    return ResolvedPolicyRead(
        id=policy.id,
        service=policy.service,
        complaint_id=policy.complaint_id,
        channel_id=policy.channel_id,
        sla=policy.sla,
        uic_id=policy.uic_id,
        description=policy.description,
        sla_days=policy_service.sla_days_for(policy),
        uic_name=policy.uic.name if policy.uic else None,
    )
