"""Tests for /internal/scheduled cron endpoints."""

from datetime import datetime, timezone

import pytest

from bcare.core.config import settings
from bcare.db.enums import JobType
from bcare.routers.internal import overdue_bucket_key, warning_bucket_key
from bcare.services import job_service


SECRET = "cron-secret"


@pytest.fixture
def internal_secret(monkeypatch):
    monkeypatch.setattr(settings, "INTERNAL_SECRET", SECRET)
    return {"X-Internal-Secret": SECRET}


def test_bucket_keys():
    early = datetime(2026, 3, 2, 9, 10, tzinfo=timezone.utc)
    late = datetime(2026, 3, 2, 9, 45, tzinfo=timezone.utc)

    assert warning_bucket_key(early) == warning_bucket_key(late) == "sla_warning_sweep:2026030209"
    assert overdue_bucket_key(early) == "sla_overdue_sweep:202603020900"
    assert overdue_bucket_key(late) == "sla_overdue_sweep:202603020930"


@pytest.mark.asyncio
async def test_unconfigured_secret_is_503(client, monkeypatch):
    monkeypatch.setattr(settings, "INTERNAL_SECRET", "")

    response = await client.post("/internal/scheduled/sla-warnings")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_wrong_secret_is_403(client, internal_secret):
    response = await client.post(
        "/internal/scheduled/sla-overdue", headers={"X-Internal-Secret": "guess"}
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_sweep_is_enqueued_once_per_bucket(client, db, internal_secret):
    first = await client.post("/internal/scheduled/sla-warnings", headers=internal_secret)
    second = await client.post("/internal/scheduled/sla-warnings", headers=internal_secret)

    assert first.status_code == 200
    assert first.json()["scheduled"] is True
    assert first.json()["job_type"] == "sla_warning_sweep"
    assert second.json()["scheduled"] is False
    assert second.json()["job_id"] == first.json()["job_id"]
    assert len(job_service.list_jobs(db, job_type=JobType.SLA_WARNING_SWEEP)) == 1


@pytest.mark.asyncio
async def test_overdue_sweep_enqueued(client, db, internal_secret):
    response = await client.post("/internal/scheduled/sla-overdue", headers=internal_secret)

    assert response.json()["scheduled"] is True
    job = job_service.list_jobs(db, job_type=JobType.SLA_OVERDUE_SWEEP)[0]
    assert job.idempotency_key.startswith("sla_overdue_sweep:")
