from datetime import datetime, timedelta, timezone

from bcare.db.models import ComplaintPolicy
from bcare.services import policy_service


NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def _policy(policy_id: int, sla: int, uic_id: int | None, description: str = "") -> ComplaintPolicy:
    return ComplaintPolicy(
        id=policy_id,
        service="COMPLAINT",
        complaint_id=1,
        channel_id=2,
        sla=sla,
        uic_id=uic_id,
        description=description,
    )


def test_select_best_policy_prefers_shortest_sla():
    slow = _policy(1, sla=5, uic_id=2)
    fast = _policy(2, sla=1, uic_id=9)

    assert policy_service.select_best_policy([slow, fast], keywords=[]) is fast


def test_select_best_policy_prefers_keyword_description_on_equal_sla():
    generic = _policy(1, sla=3, uic_id=2, description="Tarik tunai gagal")
    specific = _policy(2, sla=3, uic_id=7, description="Tarik tunai di ATM BNI gagal")

    selected = policy_service.select_best_policy([generic, specific], keywords=["ATM BNI"])

    assert selected is specific


def test_select_best_policy_keyword_match_is_case_sensitive():
    # "bni" inside another word is not the BNI keyword
    lowercase = _policy(1, sla=3, uic_id=2, description="Kartu debit hilang, dibnikan ulang")
    exact = _policy(2, sla=3, uic_id=7, description="Kartu debit BNI hilang")

    assert policy_service.select_best_policy([lowercase, exact], keywords=["BNI"]) is exact
    assert policy_service.select_best_policy([lowercase], keywords=["BNI"]) is lowercase
    assert policy_service._specificity(lowercase, ["BNI"]) == 0


def test_select_best_policy_falls_back_to_lowest_uic_then_id():
    a = _policy(5, sla=3, uic_id=8)
    b = _policy(4, sla=3, uic_id=3)
    c = _policy(3, sla=3, uic_id=3)
    no_uic = _policy(1, sla=3, uic_id=None)

    assert policy_service.select_best_policy([a, b, c, no_uic], keywords=[]) is c


def test_select_best_policy_ignores_input_order():
    policies = [_policy(i, sla=2, uic_id=4) for i in (7, 3, 9)]

    forward = policy_service.select_best_policy(policies, keywords=[])
    backward = policy_service.select_best_policy(list(reversed(policies)), keywords=[])

    assert forward.id == backward.id == 3


def test_select_best_policy_empty_returns_none():
    assert policy_service.select_best_policy([]) is None


def test_resolve_policy_exact_match_beats_complaint_only(db):
    exact = ComplaintPolicy(complaint_id=30, channel_id=1, sla=4, uic_id=3, description="")
    other_channel = ComplaintPolicy(complaint_id=30, channel_id=3, sla=1, uic_id=2, description="")
    db.add_all([exact, other_channel])
    db.commit()

    resolved = policy_service.resolve_policy(db, complaint_id=30, channel_id=1)

    assert resolved.id == exact.id


def test_resolve_policy_falls_back_to_complaint_only(db):
    only = ComplaintPolicy(complaint_id=24, channel_id=3, sla=2, uic_id=3, description="")
    db.add(only)
    db.commit()

    resolved = policy_service.resolve_policy(db, complaint_id=24, channel_id=6)

    assert resolved.id == only.id


def test_resolve_policy_none_when_nothing_matches(db):
    assert policy_service.resolve_policy(db, complaint_id=11, channel_id=7) is None


def test_resolve_policy_is_deterministic(db):
    db.add_all(
        [
            ComplaintPolicy(complaint_id=40, channel_id=6, sla=1, uic_id=4, description="BNI mobile"),
            ComplaintPolicy(complaint_id=40, channel_id=6, sla=1, uic_id=4, description="BNI mobile"),
            ComplaintPolicy(complaint_id=40, channel_id=6, sla=2, uic_id=2, description=""),
        ]
    )
    db.commit()

    first = policy_service.resolve_policy(db, complaint_id=40, channel_id=6)
    results = {policy_service.resolve_policy(db, complaint_id=40, channel_id=6).id for _ in range(5)}

    assert results == {first.id}


def test_sla_days_default_when_no_policy():
    assert policy_service.sla_days_for(None) == 1


def test_calculate_sla_due_date_adds_whole_days():
    due = policy_service.calculate_sla_due_date(3, now=NOW)

    assert due == NOW + timedelta(hours=72)


def test_calculate_sla_info_buckets():
    overdue = policy_service.calculate_sla_info(NOW - timedelta(minutes=90), now=NOW)
    urgent = policy_service.calculate_sla_info(NOW + timedelta(hours=23, minutes=10), now=NOW)
    normal = policy_service.calculate_sla_info(NOW + timedelta(days=3), now=NOW)

    assert overdue.is_overdue is True
    assert overdue.status == "overdue"
    assert overdue.remaining_hours == -1  # ceil(-1.5)
    assert urgent.status == "urgent"
    assert urgent.remaining_hours == 24
    assert normal.status == "normal"
    assert normal.remaining_hours == 72


def test_calculate_sla_info_accepts_naive_datetimes():
    info = policy_service.calculate_sla_info(
        (NOW + timedelta(hours=5)).replace(tzinfo=None), now=NOW
    )

    assert info.remaining_hours == 5
    assert info.committed_due_at.tzinfo is not None


def test_calculate_sla_info_without_due_date():
    info = policy_service.calculate_sla_info(None, now=NOW)

    assert info.remaining_hours is None
    assert info.is_overdue is False
