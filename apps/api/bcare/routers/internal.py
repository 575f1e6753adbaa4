"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron; the worker does the actual sweep.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from bcare.core.deps import get_db, verify_internal_secret
from bcare.db.enums import JobType
from bcare.services import job_service


router = APIRouter(
    prefix="/internal/scheduled",
    tags=["internal"],
    dependencies=[Depends(verify_internal_secret)],
)


class SweepScheduleResponse(BaseModel):
    job_id: int
    job_type: str
    scheduled: bool  # False when this bucket was already enqueued


def warning_bucket_key(now: datetime) -> str:
    return f"{JobType.SLA_WARNING_SWEEP.value}:{now:%Y%m%d%H}"


def overdue_bucket_key(now: datetime) -> str:
    half = "00" if now.minute < 30 else "30"
    return f"{JobType.SLA_OVERDUE_SWEEP.value}:{now:%Y%m%d%H}{half}"


def _schedule_once(db: Session, job_type: JobType, key: str) -> SweepScheduleResponse:
    job, created = job_service.schedule_job_once(db, job_type, key)
    return SweepScheduleResponse(job_id=job.id, job_type=job_type.value, scheduled=created)


@router.post("/sla-warnings", response_model=SweepScheduleResponse)
def schedule_sla_warnings(db: Session = Depends(get_db)):
    """Hourly: enqueue the due-soon warning sweep."""
    now = datetime.now(timezone.utc)
    return _schedule_once(db, JobType.SLA_WARNING_SWEEP, warning_bucket_key(now))


@router.post("/sla-overdue", response_model=SweepScheduleResponse)
def schedule_sla_overdue(db: Session = Depends(get_db)):
    """Every 30 minutes: enqueue the overdue alert sweep."""
    now = datetime.now(timezone.utc)
    return _schedule_once(db, JobType.SLA_OVERDUE_SWEEP, overdue_bucket_key(now))
