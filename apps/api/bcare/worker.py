"""
Background worker for processing scheduled jobs.

Usage:
    python -m bcare.worker

The worker polls for pending jobs (escalation emails, completion emails,
SLA sweeps) and processes them. Run it as a separate process next to
the API.
"""

import asyncio
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from bcare.core.config import settings
from bcare.core.structured_logging import build_log_context
from bcare.db.models import Job
from bcare.db.session import SessionLocal
from bcare.jobs.registry import resolve_job_handler
from bcare.services import job_service

logger = logging.getLogger(__name__)


async def process_job(db: Session, job: Job) -> None:
    """Process a single job based on its type."""
    logger.info("Processing job %s (type=%s, attempt=%s)", job.id, job.job_type, job.attempts)
    handler = resolve_job_handler(job.job_type)
    await handler(db, job)


async def run_pending_jobs(
    db: Session, limit: int | None = None, now: datetime | None = None
) -> int:
    """
    Process one batch of due jobs.

    Returns the number of jobs picked up. A failing job is marked failed
    (and re-queued while attempts remain); the rest of the batch continues.
    """
    jobs = job_service.get_pending_jobs(db, limit=limit or settings.WORKER_BATCH_SIZE, now=now)
    if jobs:
        logger.info("Found %s pending jobs", len(jobs))

    for job in jobs:
        try:
            job_service.mark_job_running(db, job)
            await process_job(db, job)
            job_service.mark_job_completed(db, job)
            logger.info("Job %s completed successfully", job.id)
        except Exception as e:
            db.rollback()
            job_service.mark_job_failed(db, job, f"{type(e).__name__}: {e}", now=now)
            logger.error(
                "Job %s failed: %s (attempt %s/%s)",
                job.id,
                type(e).__name__,
                job.attempts,
                job.max_attempts,
                extra=build_log_context(
                    ticket_id=(job.payload or {}).get("ticket_id"),
                    route="worker",
                    method="background",
                ),
            )
    return len(jobs)


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending jobs."""
    logger.info(
        "Worker starting (poll interval: %ss, batch size: %s)",
        settings.WORKER_POLL_INTERVAL,
        settings.WORKER_BATCH_SIZE,
    )
    if not settings.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY not set - emails will be logged but not sent")
    if not settings.FCM_SERVER_KEY:
        logger.warning("FCM_SERVER_KEY not set - push notifications will be logged but not sent")

    while True:
        with SessionLocal() as db:
            try:
                await run_pending_jobs(db)
            except Exception as e:
                logger.error("Error in worker loop: %s", type(e).__name__, exc_info=True)

        await asyncio.sleep(settings.WORKER_POLL_INTERVAL)


def main() -> None:
    """Entry point for the worker."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(route="worker", method="background"),
        )
        raise


if __name__ == "__main__":
    main()
