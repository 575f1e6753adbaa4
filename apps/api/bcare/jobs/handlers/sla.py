"""SLA monitor job handlers."""

from __future__ import annotations

from bcare.services import sla_monitor_service


async def process_sla_warning_sweep(db, job) -> None:
    """Push due-soon warnings for open tickets."""
    await sla_monitor_service.run_sla_warning_sweep(db)


async def process_sla_overdue_sweep(db, job) -> None:
    """Push overdue alerts for open tickets."""
    await sla_monitor_service.run_overdue_sweep(db)
