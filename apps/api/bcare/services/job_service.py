"""Outbox of background jobs: ticket notifications and SLA sweeps.

Ticket transitions enqueue notification jobs inside their own
transaction; cron endpoints enqueue sweeps at most once per time bucket.
The worker drains the table and records each attempt here.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bcare.db.enums import JobStatus, JobType
from bcare.db.models import Job

RETRY_BASE_DELAY_SECONDS = 60


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def schedule_job(
    db: Session,
    job_type: JobType,
    payload: dict,
    run_at: datetime | None = None,
    idempotency_key: str | None = None,
    *,
    commit: bool = True,
) -> Job:
    """
    Add a pending job, due immediately unless ``run_at`` is given.

    With commit=False the job only flushes, so it becomes visible to the
    worker together with the caller's other writes. A duplicate
    idempotency_key raises IntegrityError.
    """
    job = Job(
        job_type=job_type.value,
        payload=payload,
        run_at=run_at or _now_utc(),
        status=JobStatus.PENDING.value,
        attempts=0,
        idempotency_key=idempotency_key,
    )
    db.add(job)
    if commit:
        db.commit()
        db.refresh(job)
    else:
        db.flush()
    return job


def enqueue_ticket_notification(
    db: Session, job_type: JobType, *, ticket_id: int, actor_id: int | None
) -> Job:
    """Queue a ticket email in the caller's transaction (no commit)."""
    return schedule_job(
        db,
        job_type,
        {"ticket_id": ticket_id, "actor_id": actor_id},
        commit=False,
    )


def get_job_by_idempotency_key(db: Session, idempotency_key: str) -> Job | None:
    return db.query(Job).filter(Job.idempotency_key == idempotency_key).first()


def schedule_job_once(db: Session, job_type: JobType, idempotency_key: str) -> tuple[Job, bool]:
    """
    Schedule a payload-less job unless one with this key already exists.

    Returns (job, created). Two callers racing on the same key both get
    the single surviving row.
    """
    existing = get_job_by_idempotency_key(db, idempotency_key)
    if existing is not None:
        return existing, False
    try:
        return schedule_job(db, job_type, {}, idempotency_key=idempotency_key), True
    except IntegrityError:
        db.rollback()
        return get_job_by_idempotency_key(db, idempotency_key), False


def get_pending_jobs(db: Session, limit: int = 10, now: datetime | None = None) -> list[Job]:
    """Pending jobs with run_at <= now, oldest first."""
    now = now or _now_utc()
    return (
        db.query(Job)
        .filter(
            Job.status == JobStatus.PENDING.value,
            Job.run_at <= now,
        )
        .order_by(Job.run_at, Job.id)
        .limit(limit)
        .all()
    )


def list_jobs(
    db: Session,
    status: JobStatus | None = None,
    job_type: JobType | None = None,
    limit: int = 50,
) -> list[Job]:
    query = db.query(Job)
    if status:
        query = query.filter(Job.status == status.value)
    if job_type:
        query = query.filter(Job.job_type == job_type.value)
    return query.order_by(Job.created_at.desc(), Job.id.desc()).limit(limit).all()


# =============================================================================
# Attempt bookkeeping (worker)
# =============================================================================


def mark_job_running(db: Session, job: Job) -> Job:
    job.status = JobStatus.RUNNING.value
    job.attempts += 1
    db.commit()
    db.refresh(job)
    return job


def mark_job_completed(db: Session, job: Job) -> Job:
    job.status = JobStatus.COMPLETED.value
    job.completed_at = _now_utc()
    job.last_error = None
    db.commit()
    db.refresh(job)
    return job


def retry_delay(attempts: int) -> timedelta:
    """1, 2, 4, ... minutes after the n-th failed attempt."""
    return timedelta(seconds=RETRY_BASE_DELAY_SECONDS * 2 ** max(attempts - 1, 0))


def mark_job_failed(db: Session, job: Job, error: str, now: datetime | None = None) -> Job:
    """
    Record a failed attempt.

    While attempts remain the job goes back to pending, pushed back by
    retry_delay; after the last attempt it stays FAILED.
    """
    job.last_error = error[:2000]
    if job.attempts < job.max_attempts:
        job.status = JobStatus.PENDING.value
        job.run_at = (now or _now_utc()) + retry_delay(job.attempts)
    else:
        job.status = JobStatus.FAILED.value
    db.commit()
    db.refresh(job)
    return job
