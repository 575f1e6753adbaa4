"""Outbox worker: registry, dispatch and retry bookkeeping."""

from datetime import datetime, timedelta, timezone

import pytest

from bcare.db.enums import JobStatus, JobType
from bcare.db.models import Job
from bcare.jobs.registry import JOB_HANDLERS, resolve_job_handler
from bcare.schemas.ticket import TicketCreate
from bcare.services import activity_service, escalation_service, job_service, ticket_service
from bcare.worker import run_pending_jobs


NOW = datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc)


@pytest.fixture
def escalated_ticket(db, customer, cxc_actor, specialist_employee, policy):
    return ticket_service.create_ticket(
        db,
        cxc_actor,
        TicketCreate(
            description="Saldo Tapcash terpotong",
            issue_channel_id=2,
            complaint_id=1,
            customer_id=customer.id,
            action="ESCALATED",
        ),
        now=NOW,
    )


def test_every_job_type_has_a_handler():
    assert set(JOB_HANDLERS) == {job_type.value for job_type in JobType}


def test_unknown_job_type_is_rejected():
    with pytest.raises(ValueError, match="Unknown job type"):
        resolve_job_handler("mystery")


@pytest.mark.asyncio
async def test_escalation_job_sends_email(db, escalated_ticket, outbox):
    processed = await run_pending_jobs(db)

    job = job_service.list_jobs(db, job_type=JobType.ESCALATION_EMAIL)[0]
    assert processed == 1
    assert job.status == JobStatus.COMPLETED.value
    assert job.attempts == 1
    assert [e["to"] for e in outbox.emails] == ["andi.opr@example.com"]
    assert [a.content for a in activity_service.get_email_history(db, escalated_ticket.id)] == [
        "Escalation email sent to 1 employees in Divisi OPR"
    ]


@pytest.mark.asyncio
async def test_done_by_uic_job_emails_agent(db, escalated_ticket, specialist_actor, outbox):
    ticket_service.update_ticket(db, specialist_actor, escalated_ticket.id, {"action": "DONE_BY_UIC"})

    await run_pending_jobs(db)

    assert sorted(e["to"] for e in outbox.emails) == ["andi.opr@example.com", "dewi.cxc@example.com"]


@pytest.mark.asyncio
async def test_failing_job_is_retried_then_failed(db, escalated_ticket, monkeypatch):
    async def broken_notifier(db, *, ticket_id, actor_id=None):
        raise RuntimeError("smtp exploded")

    monkeypatch.setattr(escalation_service, "notify_escalation", broken_notifier)

    first_run = datetime.now(timezone.utc)
    await run_pending_jobs(db, now=first_run)
    job = job_service.list_jobs(db, job_type=JobType.ESCALATION_EMAIL)[0]
    assert job.status == JobStatus.PENDING.value
    assert job.attempts == 1
    assert job.last_error == "RuntimeError: smtp exploded"

    # Backed off: not due again yet
    assert await run_pending_jobs(db, now=first_run) == 0

    await run_pending_jobs(db, now=first_run + timedelta(minutes=5))
    await run_pending_jobs(db, now=first_run + timedelta(minutes=10))
    db.refresh(job)
    assert job.status == JobStatus.FAILED.value
    assert job.attempts == 3

    # The transition itself is unaffected
    db.refresh(escalated_ticket)
    assert escalated_ticket.employee_status.code == "ESCALATED"


@pytest.mark.asyncio
async def test_unknown_job_type_fails_without_blocking_batch(db, escalated_ticket, outbox):
    stray = Job(job_type="mystery", payload={}, run_at=datetime.now(timezone.utc))
    db.add(stray)
    db.commit()

    processed = await run_pending_jobs(db)

    db.refresh(stray)
    assert processed == 2
    assert stray.last_error == "ValueError: Unknown job type: mystery"
    assert len(outbox.emails) == 1


@pytest.mark.asyncio
async def test_job_without_ticket_id_fails(db):
    job = job_service.schedule_job(db, JobType.ESCALATION_EMAIL, {})

    await run_pending_jobs(db)

    db.refresh(job)
    assert job.last_error == "ValueError: Missing ticket_id in job payload"


@pytest.mark.asyncio
async def test_future_jobs_wait(db, outbox):
    job_service.schedule_job(
        db, JobType.SLA_WARNING_SWEEP, {}, run_at=datetime(2999, 1, 1, tzinfo=timezone.utc)
    )

    assert await run_pending_jobs(db) == 0
