"""Job handler registry."""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping

from bcare.db.enums import JobType
from bcare.jobs.handlers import notifications, sla

JobHandler = Callable[[object, object], Awaitable[None]]

JOB_HANDLERS: Mapping[str, JobHandler] = {
    JobType.ESCALATION_EMAIL.value: notifications.process_escalation_email,
    JobType.DONE_BY_UIC_EMAIL.value: notifications.process_done_by_uic_email,
    JobType.SLA_WARNING_SWEEP.value: sla.process_sla_warning_sweep,
    JobType.SLA_OVERDUE_SWEEP.value: sla.process_sla_overdue_sweep,
}


def resolve_job_handler(job_type: str) -> JobHandler:
    handler = JOB_HANDLERS.get(job_type)
    if not handler:
        raise ValueError(f"Unknown job type: {job_type}")
    return handler
