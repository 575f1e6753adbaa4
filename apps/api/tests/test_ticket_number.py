from datetime import datetime, timedelta, timezone

import pytest

from bcare.core.exceptions import ConflictError
from bcare.schemas.ticket import TicketCreate
from bcare.services import ticket_number_service, ticket_service


# 08:00 in Jakarta (UTC+7)
NOW = datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc)


def _create(db, actor, now, description="Kartu tertelan di ATM"):
    return ticket_service.create_ticket(
        db,
        actor,
        TicketCreate(description=description, issue_channel_id=1, complaint_id=30),
        now=now,
    )


def test_format_ticket_number_pads_suffix():
    number = ticket_number_service.format_ticket_number(NOW, 0, prefix="BNI", tz_name="Asia/Jakarta")

    assert number == "BNI-202603020001"


def test_format_ticket_number_uses_local_calendar_day():
    # 18:30 UTC on March 1st is already March 2nd in Jakarta
    late_evening_utc = datetime(2026, 3, 1, 18, 30, tzinfo=timezone.utc)

    number = ticket_number_service.format_ticket_number(
        late_evening_utc, 41, prefix="BNI", tz_name="Asia/Jakarta"
    )

    assert number == "BNI-202603020042"


def test_local_day_bounds_are_utc():
    start, end = ticket_number_service.local_day_bounds(NOW, "Asia/Jakarta")

    assert start == datetime(2026, 3, 1, 17, 0, tzinfo=timezone.utc)
    assert end - start == timedelta(days=1)


def test_ticket_numbers_increase_within_a_day(db, customer_actor):
    numbers = [
        _create(db, customer_actor, NOW + timedelta(minutes=i)).ticket_number for i in range(3)
    ]

    assert numbers == ["BNI-202603020001", "BNI-202603020002", "BNI-202603020003"]


def test_ticket_numbers_restart_next_day(db, customer_actor):
    _create(db, customer_actor, NOW)
    next_day = _create(db, customer_actor, NOW + timedelta(days=1))

    assert next_day.ticket_number == "BNI-202603030001"


def test_ticket_number_collision_is_retried(db, customer_actor, monkeypatch):
    first = _create(db, customer_actor, NOW)
    issued = iter([first.ticket_number, "BNI-202603020099"])

    monkeypatch.setattr(
        ticket_number_service, "generate_ticket_number", lambda _db, _now: next(issued)
    )
    second = _create(db, customer_actor, NOW + timedelta(minutes=1))

    assert second.ticket_number == "BNI-202603020099"


def test_ticket_number_collision_gives_up_after_retries(db, customer_actor, monkeypatch):
    first = _create(db, customer_actor, NOW)
    monkeypatch.setattr(
        ticket_number_service, "generate_ticket_number", lambda _db, _now: first.ticket_number
    )

    with pytest.raises(ConflictError):
        _create(db, customer_actor, NOW + timedelta(minutes=1))
