import pytest

from bcare.db.models import ComplaintPolicy
from bcare.db.seed import seed_reference_data

from conftest import OPR_DIVISION, auth_headers


@pytest.mark.asyncio
async def test_reference_requires_auth(client):
    response = await client.get("/v1/reference/channels")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_lookup_lists(client, customer_actor):
    headers = auth_headers(customer_actor)

    channels = await client.get("/v1/reference/channels", headers=headers)
    categories = await client.get("/v1/reference/complaint-categories", headers=headers)
    divisions = await client.get("/v1/reference/divisions", headers=headers)
    terminals = await client.get("/v1/reference/terminals?channel_id=1", headers=headers)

    assert channels.json()[1] == {"id": 2, "code": "TAPCASH", "name": "BNI Tapcash"}
    assert categories.json()[0]["complaint_code"] == "2ND_CHARGEBACK"
    assert [d["code"] for d in divisions.json()][:4] == ["CXC", "BCC", "OPR", "TBS"]
    assert [t["terminal_code"] for t in terminals.json()] == ["ATM001", "ATM002"]


@pytest.mark.asyncio
async def test_resolve_policy_endpoint(client, db, customer_actor):
    db.add_all(
        [
            ComplaintPolicy(complaint_id=1, channel_id=2, sla=5, uic_id=4, description=""),
            ComplaintPolicy(complaint_id=1, channel_id=2, sla=2, uic_id=OPR_DIVISION, description=""),
        ]
    )
    db.commit()
    headers = auth_headers(customer_actor)

    resolved = await client.get(
        "/v1/reference/policies/resolve?complaint_id=1&channel_id=2", headers=headers
    )
    missing = await client.get("/v1/reference/policies/resolve?complaint_id=12", headers=headers)

    assert resolved.status_code == 200
    assert resolved.json()["sla_days"] == 2
    assert resolved.json()["uic_name"] == "Divisi OPR"
    assert missing.status_code == 404


def test_seed_is_idempotent(db):
    seed_reference_data(db, include_policies=True)
    seed_reference_data(db, include_policies=True)

    assert db.query(ComplaintPolicy).count() == 4
