"""Background job (outbox) model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from bcare.db.base import Base
from bcare.db.enums import DEFAULT_JOB_STATUS
from bcare.db.models.ticketing import JSONType


class Job(Base):
    """
    Background job for async processing.

    Used for: escalation / completion emails and SLA sweeps.
    Worker polls for pending jobs and processes them.
    """

    __tablename__ = "jobs"
    __table_args__ = (
        Index("idx_jobs_pending", "status", "run_at"),
        Index(
            "uq_job_idempotency",
            "idempotency_key",
            unique=True,
            postgresql_where=text("idempotency_key IS NOT NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    run_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_JOB_STATUS.value, nullable=False
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
