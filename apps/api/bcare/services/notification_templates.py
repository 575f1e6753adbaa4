"""Email and push message templates for ticket notifications."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from bcare.core.config import settings
from bcare.db.models import Ticket
from bcare.services.policy_service import as_utc

VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    data: dict = field(default_factory=dict)


def render_template(template: str, variables: dict[str, str]) -> str:
    """
    Replace {{variable_name}} placeholders with HTML-escaped values.

    Missing variables are replaced with empty string.
    """

    def replace_var(match: re.Match) -> str:
        return html.escape(variables.get(match.group(1), ""))

    return VARIABLE_PATTERN.sub(replace_var, template)


def _format_local(value: datetime | None) -> str:
    if value is None:
        return "-"
    return as_utc(value).astimezone(ZoneInfo(settings.TICKET_TIMEZONE)).strftime("%d %b %Y %H:%M %Z")


ESCALATION_SUBJECT = "TICKET ESCALATION - {{ticket_number}}"

ESCALATION_BODY = """\
<h2>Ticket Escalation</h2>
<p>Ticket <strong>{{ticket_number}}</strong> has been escalated to {{division_name}}.</p>
<table>
  <tr><td>Priority</td><td>{{priority}}</td></tr>
  <tr><td>Complaint</td><td>{{complaint}}</td></tr>
  <tr><td>Channel</td><td>{{channel}}</td></tr>
  <tr><td>Customer</td><td>{{customer_name}}</td></tr>
  <tr><td>Due</td><td>{{due_at}}</td></tr>
</table>
<p>{{description}}</p>
"""

DONE_BY_UIC_SUBJECT = "TICKET COMPLETED BY UIC - {{ticket_number}}"

DONE_BY_UIC_BODY = """\
<h2>Ticket Completed by UIC</h2>
<p>Hello {{agent_name}},</p>
<p>{{division_name}} has finished working on ticket <strong>{{ticket_number}}</strong>.
Please review and close it with the customer.</p>
<table>
  <tr><td>Complaint</td><td>{{complaint}}</td></tr>
  <tr><td>Customer</td><td>{{customer_name}}</td></tr>
  <tr><td>Due</td><td>{{due_at}}</td></tr>
</table>
"""


def _ticket_variables(ticket: Ticket) -> dict[str, str]:
    return {
        "ticket_number": ticket.ticket_number,
        "priority": ticket.priority.name if ticket.priority else "",
        "complaint": ticket.complaint.complaint_name if ticket.complaint else "",
        "channel": ticket.issue_channel.name if ticket.issue_channel else "",
        "customer_name": ticket.customer.full_name if ticket.customer else "",
        "due_at": _format_local(ticket.committed_due_at),
        "description": ticket.description or "",
    }


def escalation_email(ticket: Ticket, division_name: str) -> tuple[str, str]:
    variables = {**_ticket_variables(ticket), "division_name": division_name}
    return (
        render_template(ESCALATION_SUBJECT, variables),
        render_template(ESCALATION_BODY, variables),
    )


def done_by_uic_email(ticket: Ticket, agent_name: str, division_name: str) -> tuple[str, str]:
    variables = {
        **_ticket_variables(ticket),
        "agent_name": agent_name,
        "division_name": division_name,
    }
    return (
        render_template(DONE_BY_UIC_SUBJECT, variables),
        render_template(DONE_BY_UIC_BODY, variables),
    )


def sla_warning_push(ticket: Ticket, hours_left: int, *, for_customer: bool) -> PushMessage:
    data = {
        "ticket_id": str(ticket.id),
        "ticket_number": ticket.ticket_number,
        "action": "view_ticket",
        "type": "sla_warning",
    }
    if for_customer:
        return PushMessage(
            title="Update Progress Ticket",
            body=f"Ticket #{ticket.ticket_number} sedang dalam proses penyelesaian.",
            data=data,
        )
    return PushMessage(
        title="SLA Warning",
        body=f"Ticket #{ticket.ticket_number} akan melewati SLA dalam {hours_left} jam.",
        data={**data, "priority": "high"},
    )


def sla_overdue_push(ticket: Ticket, hours_overdue: int) -> PushMessage:
    return PushMessage(
        title="SLA Overdue Alert",
        body=f"Ticket #{ticket.ticket_number} is {hours_overdue} hours overdue",
        data={
            "ticket_id": str(ticket.id),
            "ticket_number": ticket.ticket_number,
            "action": "view_ticket",
            "type": "sla_overdue",
            "priority": "critical",
        },
    )
