"""Human-readable, date-scoped ticket numbers: PREFIX-YYYYMMDDNNNN."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from bcare.core.config import settings
from bcare.db.models import Ticket


def local_day_bounds(now: datetime, tz_name: str | None = None) -> tuple[datetime, datetime]:
    """Return [local midnight today, local midnight tomorrow) as UTC datetimes."""
    tz = ZoneInfo(tz_name or settings.TICKET_TIMEZONE)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_day = now.astimezone(tz).date()
    start = datetime.combine(local_day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def format_ticket_number(
    now: datetime,
    tickets_today: int,
    *,
    prefix: str | None = None,
    tz_name: str | None = None,
) -> str:
    """Pure formatter: the suffix is ``tickets_today + 1``, zero-padded to 4."""
    tz = ZoneInfo(tz_name or settings.TICKET_TIMEZONE)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    date_part = now.astimezone(tz).strftime("%Y%m%d")
    return f"{prefix or settings.TICKET_NUMBER_PREFIX}-{date_part}{tickets_today + 1:04d}"


def count_tickets_created_on_day(db: Session, now: datetime) -> int:
    start, end = local_day_bounds(now)
    return (
        db.query(func.count(Ticket.id))
        .filter(Ticket.created_at >= start, Ticket.created_at < end)
        .scalar()
        or 0
    )


def generate_ticket_number(db: Session, now: datetime) -> str:
    """
    Next ticket number for the calendar day of ``now``.

    Read-then-write: two concurrent creations can compute the same
    number. The UNIQUE constraint on tickets.ticket_number catches this
    and ticket_service retries.
    """
    return format_ticket_number(now, count_tickets_created_on_day(db, now))
