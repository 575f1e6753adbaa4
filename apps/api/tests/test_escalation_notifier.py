from datetime import datetime, timezone

import pytest

from bcare.db.models import Employee, TicketActivity
from bcare.schemas.ticket import TicketCreate
from bcare.services import escalation_service, ticket_service

from conftest import ASST_DGO_ROLE, OPR_DIVISION


NOW = datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc)


def _email_activities(db, ticket_id: int) -> list[str]:
    rows = (
        db.query(TicketActivity)
        .filter(TicketActivity.ticket_id == ticket_id)
        .order_by(TicketActivity.id)
        .all()
    )
    return [row.content for row in rows if row.activity_type.code == "EMAIL_SENT"]


@pytest.fixture
def opr_team(db, specialist_employee):
    colleague = Employee(
        npp="OPR002",
        full_name="Specialist Wulan",
        email="wulan.opr@example.com",
        role_id=ASST_DGO_ROLE,
        division_id=OPR_DIVISION,
    )
    inactive = Employee(
        npp="OPR003",
        full_name="Former Specialist",
        email="former.opr@example.com",
        role_id=ASST_DGO_ROLE,
        division_id=OPR_DIVISION,
        is_active=False,
    )
    no_email = Employee(
        npp="OPR004", full_name="Specialist Tanpa Email", role_id=ASST_DGO_ROLE, division_id=OPR_DIVISION
    )
    db.add_all([colleague, inactive, no_email])
    db.commit()
    return [specialist_employee, colleague]


@pytest.fixture
def escalated_ticket(db, customer, cxc_actor, policy):
    return ticket_service.create_ticket(
        db,
        cxc_actor,
        TicketCreate(
            description="Saldo Tapcash terpotong",
            issue_channel_id=2,
            complaint_id=1,
            customer_id=customer.id,
            action="ESCALATED",
        ),
        now=NOW,
    )


def test_division_recipients_are_active_with_email(db, opr_team):
    recipients = escalation_service.get_division_recipients(db, OPR_DIVISION)

    assert [r.email for r in recipients] == [e.email for e in opr_team]


@pytest.mark.asyncio
async def test_escalation_emails_whole_division(db, escalated_ticket, opr_team, cxc_employee, outbox):
    result = await escalation_service.notify_escalation(
        db, ticket_id=escalated_ticket.id, actor_id=cxc_employee.id
    )

    assert result.recipients == 2
    assert result.failed == 0
    assert not result.skipped
    assert sorted(e["to"] for e in outbox.emails) == ["andi.opr@example.com", "wulan.opr@example.com"]
    assert escalated_ticket.ticket_number in outbox.emails[0]["subject"]
    assert _email_activities(db, escalated_ticket.id) == [
        "Escalation email sent to 2 employees in Divisi OPR"
    ]


@pytest.mark.asyncio
async def test_escalation_partial_failure_still_logged(db, escalated_ticket, opr_team, outbox):
    outbox.failing_recipients.add("wulan.opr@example.com")

    result = await escalation_service.notify_escalation(db, ticket_id=escalated_ticket.id)

    assert result.recipients == 2
    assert result.failed == 1
    assert [e["to"] for e in outbox.emails] == ["andi.opr@example.com"]
    assert len(_email_activities(db, escalated_ticket.id)) == 1


@pytest.mark.asyncio
async def test_escalation_without_recipients_is_noop(db, escalated_ticket, outbox):
    result = await escalation_service.notify_escalation(db, ticket_id=escalated_ticket.id)

    assert result.skipped_reason == "no_recipients"
    assert outbox.emails == []
    assert _email_activities(db, escalated_ticket.id) == []


@pytest.mark.asyncio
async def test_escalation_without_policy_is_noop(db, customer_actor, opr_team, outbox):
    ticket = ticket_service.create_ticket(
        db,
        customer_actor,
        TicketCreate(description="ATM menelan kartu", issue_channel_id=1, complaint_id=30),
        now=NOW,
    )

    result = await escalation_service.notify_escalation(db, ticket_id=ticket.id)

    assert result.skipped_reason == "no_policy"
    assert outbox.emails == []


@pytest.mark.asyncio
async def test_escalation_for_missing_ticket_is_noop(db, outbox):
    result = await escalation_service.notify_escalation(db, ticket_id=12345)

    assert result.skipped_reason == "ticket_not_found"


@pytest.mark.asyncio
async def test_done_by_uic_emails_responsible_agent(
    db, escalated_ticket, specialist_employee, outbox
):
    result = await escalation_service.notify_done_by_uic(
        db, ticket_id=escalated_ticket.id, actor_id=specialist_employee.id
    )

    assert result.recipients == 1
    assert [e["to"] for e in outbox.emails] == ["dewi.cxc@example.com"]
    assert _email_activities(db, escalated_ticket.id) == [
        "Completion email sent to CXC agent Agent Dewi"
    ]


@pytest.mark.asyncio
async def test_done_by_uic_without_agent_is_noop(db, customer_actor, policy, outbox):
    ticket = ticket_service.create_ticket(
        db,
        customer_actor,
        TicketCreate(description="Saldo Tapcash terpotong", issue_channel_id=2, complaint_id=1),
        now=NOW,
    )

    result = await escalation_service.notify_done_by_uic(db, ticket_id=ticket.id)

    assert result.skipped_reason == "no_recipients"
    assert outbox.emails == []
