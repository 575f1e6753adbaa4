"""Ticket request commands and response views."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, model_validator


# =============================================================================
# Create
# =============================================================================


class TicketCreate(BaseModel):
    """Request body for POST /v1/tickets."""

    model_config = ConfigDict(extra="forbid")

    description: str = Field(min_length=1, max_length=5000)
    issue_channel_id: int
    complaint_id: int
    customer_id: int | None = None  # Employee-only
    action: Literal["ESCALATED", "CLOSED"] | None = None
    priority_id: int | None = None
    intake_source_id: int | None = None
    terminal_id: int | None = None
    transaction_date: date | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    record: str | None = None
    solution: str | None = None

    @model_validator(mode="after")
    def _solution_only_when_closing(self) -> "TicketCreate":
        if self.solution is not None and self.action != "CLOSED":
            raise ValueError("solution is only accepted with action=CLOSED")
        return self


# =============================================================================
# Update commands (one type per action, each with its permitted fields)
# =============================================================================


class _ClassificationFields(BaseModel):
    """Fields a CXC agent may change alongside a status action."""

    model_config = ConfigDict(extra="forbid")

    priority_id: int | None = None
    record: str | None = None
    issue_channel_id: int | None = None
    intake_source_id: int | None = None
    complaint_id: int | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    transaction_date: date | None = None
    terminal_id: int | None = None
    description: str | None = Field(default=None, min_length=1, max_length=5000)
    division_notes: str | None = Field(default=None, min_length=1, max_length=5000)


class HandleByCXC(BaseModel):
    """Take the ticket over; classification stays as it is."""

    model_config = ConfigDict(extra="forbid")

    action: Literal["HANDLEDCXC"]
    division_notes: str | None = Field(default=None, min_length=1, max_length=5000)


class Escalate(_ClassificationFields):
    action: Literal["ESCALATED"]


class Close(_ClassificationFields):
    action: Literal["CLOSED"]
    solution: str | None = None


class Decline(_ClassificationFields):
    action: Literal["DECLINED"]
    reason: str | None = None


class MarkDoneByUIC(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: Literal["DONE_BY_UIC"]
    division_notes: str | None = Field(default=None, min_length=1, max_length=5000)


class UpdateNotes(BaseModel):
    """No action: append a division note only."""

    model_config = ConfigDict(extra="forbid")

    action: None = None
    division_notes: str = Field(min_length=1, max_length=5000)


NOTES_TAG = "NOTES"


def _command_tag(value: Any) -> str:
    action = value.get("action") if isinstance(value, dict) else getattr(value, "action", None)
    return action or NOTES_TAG


TicketCommand = Annotated[
    Union[
        Annotated[HandleByCXC, Tag("HANDLEDCXC")],
        Annotated[Escalate, Tag("ESCALATED")],
        Annotated[Close, Tag("CLOSED")],
        Annotated[Decline, Tag("DECLINED")],
        Annotated[MarkDoneByUIC, Tag("DONE_BY_UIC")],
        Annotated[UpdateNotes, Tag(NOTES_TAG)],
    ],
    Discriminator(_command_tag),
]


# =============================================================================
# Responses
# =============================================================================


class CodeName(BaseModel):
    id: int
    code: str
    name: str


class PartySummary(BaseModel):
    id: int
    full_name: str
    email: str | None = None


class PolicySummary(BaseModel):
    id: int
    service: str | None
    sla_days: int
    uic_id: int | None
    uic_name: str | None
    description: str | None


class SlaInfoRead(BaseModel):
    committed_due_at: datetime | None
    remaining_hours: int | None
    is_overdue: bool
    status: str | None


class DivisionNote(BaseModel):
    note: str
    author_id: int | None = None
    created_at: datetime | None = None


class CustomerTicketRead(BaseModel):
    """Customer-facing ticket view (no internal status or notes)."""

    ticket_id: int
    ticket_number: str
    description: str
    customer_status: CodeName
    priority: CodeName
    issue_channel: CodeName
    complaint: CodeName
    terminal_id: int | None
    transaction_date: date | None
    amount: Decimal | None
    reason: str | None
    solution: str | None
    committed_due_at: datetime
    closed_time: datetime | None
    created_at: datetime
    updated_at: datetime
    sla_info: SlaInfoRead


class TicketRead(CustomerTicketRead):
    """Employee ticket view."""

    employee_status: CodeName
    intake_source: CodeName
    customer: PartySummary
    responsible_employee: PartySummary | None
    policy: PolicySummary | None
    record: str | None
    division_notes: list[DivisionNote]


class TicketListResponse(BaseModel):
    items: list[TicketRead | CustomerTicketRead]
    total: int
    limit: int
    offset: int


class TicketDeleteResponse(BaseModel):
    message: str
    ticket_id: int
    ticket_number: str
    delete_at: datetime
    delete_by: int
