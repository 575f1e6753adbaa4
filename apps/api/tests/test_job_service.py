from datetime import datetime, timedelta, timezone

from bcare.db.enums import JobStatus, JobType
from bcare.services import job_service
from bcare.services.policy_service import as_utc


NOW = datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc)


def test_retry_delay_doubles():
    assert [job_service.retry_delay(n) for n in (1, 2, 3)] == [
        timedelta(minutes=1),
        timedelta(minutes=2),
        timedelta(minutes=4),
    ]


def test_enqueued_notification_waits_for_caller_commit(db):
    job = job_service.enqueue_ticket_notification(
        db, JobType.ESCALATION_EMAIL, ticket_id=10, actor_id=3
    )
    assert job.payload == {"ticket_id": 10, "actor_id": 3}

    db.rollback()

    assert job_service.list_jobs(db) == []


def test_schedule_job_once_per_key(db):
    first, created = job_service.schedule_job_once(db, JobType.SLA_OVERDUE_SWEEP, "sweep:1")
    again, created_again = job_service.schedule_job_once(db, JobType.SLA_OVERDUE_SWEEP, "sweep:1")
    other, _ = job_service.schedule_job_once(db, JobType.SLA_OVERDUE_SWEEP, "sweep:2")

    assert (created, created_again) == (True, False)
    assert again.id == first.id
    assert other.id != first.id


def test_failed_job_is_requeued_with_backoff(db):
    job = job_service.schedule_job(db, JobType.SLA_WARNING_SWEEP, {}, run_at=NOW)
    job_service.mark_job_running(db, job)

    job_service.mark_job_failed(db, job, "NotificationDeliveryError: FCM API error 500", now=NOW)

    assert job.status == JobStatus.PENDING.value
    assert as_utc(job.run_at) == NOW + timedelta(minutes=1)
    assert job_service.get_pending_jobs(db, now=NOW) == []
    assert job_service.get_pending_jobs(db, now=NOW + timedelta(minutes=1)) == [job]


def test_last_attempt_marks_failed(db):
    job = job_service.schedule_job(db, JobType.SLA_WARNING_SWEEP, {}, run_at=NOW)
    for _ in range(job.max_attempts):
        job_service.mark_job_running(db, job)
        job_service.mark_job_failed(db, job, "boom", now=NOW)

    assert job.status == JobStatus.FAILED.value
    assert job.attempts == 3


def test_completed_job_clears_error(db):
    job = job_service.schedule_job(db, JobType.SLA_WARNING_SWEEP, {}, run_at=NOW)
    job_service.mark_job_running(db, job)
    job_service.mark_job_failed(db, job, "boom", now=NOW)
    job_service.mark_job_running(db, job)

    job_service.mark_job_completed(db, job)

    assert job.status == JobStatus.COMPLETED.value
    assert job.last_error is None
    assert job.completed_at is not None
