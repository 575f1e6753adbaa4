"""Complaint policy resolution and SLA arithmetic."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from bcare.core.config import settings
from bcare.db.models import ComplaintPolicy

logger = logging.getLogger(__name__)

SLA_URGENT_HOURS = 24


@dataclass(frozen=True)
class SlaInfo:
    """Derived SLA view of a ticket at a point in time."""

    committed_due_at: datetime | None
    remaining_hours: int | None
    is_overdue: bool
    status: str | None  # overdue | urgent | normal


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Policy resolution
# =============================================================================


def _specificity(policy: ComplaintPolicy, keywords: list[str]) -> int:
    description = policy.description or ""
    return 1 if any(keyword in description for keyword in keywords) else 0


def select_best_policy(
    policies: list[ComplaintPolicy], keywords: list[str] | None = None
) -> ComplaintPolicy | None:
    """
    Pick one policy out of several matches for the same pair.

    Order: shortest SLA, then descriptions containing a specificity
    keyword, then lowest uic_id. Policy id is the final tie-break so the
    choice never depends on row order.
    """
    if not policies:
        return None
    if len(policies) == 1:
        return policies[0]

    keywords = settings.policy_keywords_list if keywords is None else keywords
    no_uic = float("inf")

    def sort_key(policy: ComplaintPolicy) -> tuple:
        return (
            policy.sla,
            -_specificity(policy, keywords),
            policy.uic_id if policy.uic_id is not None else no_uic,
            policy.id,
        )

    return min(policies, key=sort_key)


def resolve_policy(
    db: Session, *, complaint_id: int, channel_id: int | None
) -> ComplaintPolicy | None:
    """
    Resolve the SLA policy for a complaint category and channel.

    Exact (complaint, channel) matches win; otherwise any policy for the
    complaint category is considered. Returns None when nothing matches.
    """
    exact: list[ComplaintPolicy] = []
    if channel_id is not None:
        exact = (
            db.query(ComplaintPolicy)
            .filter(
                ComplaintPolicy.complaint_id == complaint_id,
                ComplaintPolicy.channel_id == channel_id,
            )
            .order_by(ComplaintPolicy.id)
            .all()
        )

    candidates = exact
    if not candidates:
        candidates = (
            db.query(ComplaintPolicy)
            .filter(ComplaintPolicy.complaint_id == complaint_id)
            .order_by(ComplaintPolicy.id)
            .all()
        )
        if candidates:
            logger.info(
                "No exact policy for complaint=%s channel=%s; using complaint-only match",
                complaint_id,
                channel_id,
            )

    if not candidates:
        return None

    selected = select_best_policy(candidates)
    if len(candidates) > 1:
        logger.warning(
            "Ambiguous complaint policy for complaint=%s channel=%s: candidates=%s selected=%s",
            complaint_id,
            channel_id,
            [policy.id for policy in candidates],
            selected.id if selected else None,
        )
    return selected


# =============================================================================
# SLA arithmetic
# =============================================================================


def sla_days_for(policy: ComplaintPolicy | None) -> int:
    if policy is None or policy.sla is None:
        return settings.DEFAULT_SLA_DAYS
    return policy.sla


def calculate_sla_due_date(sla_days: int, *, now: datetime | None = None) -> datetime:
    """Due date is ``sla_days`` whole days (24h each) after now."""
    start = as_utc(now) or _now_utc()
    return start + timedelta(hours=sla_days * 24)


def calculate_sla_info(
    committed_due_at: datetime | None, *, now: datetime | None = None
) -> SlaInfo:
    """Remaining hours (rounded up), overdue flag and urgency bucket."""
    due = as_utc(committed_due_at)
    if due is None:
        return SlaInfo(committed_due_at=None, remaining_hours=None, is_overdue=False, status=None)

    current = as_utc(now) or _now_utc()
    remaining_hours = math.ceil((due - current).total_seconds() / 3600)
    if remaining_hours < 0:
        status = "overdue"
    elif remaining_hours <= SLA_URGENT_HOURS:
        status = "urgent"
    else:
        status = "normal"
    return SlaInfo(
        committed_due_at=due,
        remaining_hours=remaining_hours,
        is_overdue=remaining_hours < 0,
        status=status,
    )
