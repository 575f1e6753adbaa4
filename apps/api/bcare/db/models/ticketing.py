"""Ticket, activity log, structured status events and feedback."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bcare.db.base import Base
from bcare.db.models.parties import Customer, Employee
from bcare.db.models.reference import (
    ActivityTypeRef,
    Channel,
    ComplaintCategory,
    ComplaintPolicy,
    CustomerStatusRef,
    EmployeeStatusRef,
    PriorityRef,
    SenderTypeRef,
    SourceRef,
    Terminal,
)

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Ticket(Base):
    """
    A customer complaint ticket.

    Carries two decoupled status dimensions: a coarse customer-visible
    status and a fine-grained internal employee status.
    """

    __tablename__ = "tickets"
    __table_args__ = (
        Index("idx_tickets_created_at", "created_at"),
        Index("idx_tickets_customer", "customer_id", "created_at"),
        Index("idx_tickets_due_open", "committed_due_at", "closed_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    responsible_employee_id: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )

    customer_status_id: Mapped[int] = mapped_column(
        ForeignKey("customer_statuses.id"), nullable=False
    )
    employee_status_id: Mapped[int] = mapped_column(
        ForeignKey("employee_statuses.id"), nullable=False
    )
    priority_id: Mapped[int] = mapped_column(ForeignKey("priorities.id"), nullable=False)
    issue_channel_id: Mapped[int] = mapped_column(ForeignKey("channels.id"), nullable=False)
    intake_source_id: Mapped[int] = mapped_column(ForeignKey("sources.id"), nullable=False)
    complaint_id: Mapped[int] = mapped_column(
        ForeignKey("complaint_categories.id"), nullable=False
    )
    policy_id: Mapped[int | None] = mapped_column(
        ForeignKey("complaint_policies.id", ondelete="SET NULL"), nullable=True
    )
    terminal_id: Mapped[int | None] = mapped_column(
        ForeignKey("terminals.id", ondelete="SET NULL"), nullable=True
    )

    transaction_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    record: Mapped[str | None] = mapped_column(Text, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    solution: Mapped[str | None] = mapped_column(Text, nullable=True)
    division_notes: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    committed_due_at: Mapped[datetime] = mapped_column(nullable=False)
    closed_time: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    delete_at: Mapped[datetime | None] = mapped_column(nullable=True)
    delete_by: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )

    customer: Mapped["Customer"] = relationship()
    responsible_employee: Mapped["Employee | None"] = relationship(
        foreign_keys=[responsible_employee_id]
    )
    customer_status: Mapped["CustomerStatusRef"] = relationship()
    employee_status: Mapped["EmployeeStatusRef"] = relationship()
    priority: Mapped["PriorityRef"] = relationship()
    issue_channel: Mapped["Channel"] = relationship()
    intake_source: Mapped["SourceRef"] = relationship()
    complaint: Mapped["ComplaintCategory"] = relationship()
    policy: Mapped["ComplaintPolicy | None"] = relationship()
    terminal: Mapped["Terminal | None"] = relationship()


class TicketActivity(Base):
    """
    Append-only activity log entry.

    Rows are never updated or deleted; attachment removals and soft
    deletes are recorded as new rows.
    """

    __tablename__ = "ticket_activities"
    __table_args__ = (
        Index("idx_ticket_activities_ticket_time", "ticket_id", "activity_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    activity_type_id: Mapped[int] = mapped_column(
        ForeignKey("activity_types.id"), nullable=False
    )
    sender_type_id: Mapped[int] = mapped_column(ForeignKey("sender_types.id"), nullable=False)
    sender_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    activity_time: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    ticket: Mapped["Ticket"] = relationship()
    activity_type: Mapped["ActivityTypeRef"] = relationship()
    sender_type: Mapped["SenderTypeRef"] = relationship()


class TicketStatusEvent(Base):
    """Structured status transition, paired with its STATUS_CHANGE activity."""

    __tablename__ = "ticket_status_events"
    __table_args__ = (
        Index("idx_ticket_status_events_ticket_created", "ticket_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    activity_id: Mapped[int | None] = mapped_column(
        ForeignKey("ticket_activities.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    action_type: Mapped[str] = mapped_column(String(20), nullable=False)
    trigger_action: Mapped[str | None] = mapped_column(String(20), nullable=True)
    from_customer_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    to_customer_status: Mapped[str] = mapped_column(String(30), nullable=False)
    from_employee_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    to_employee_status: Mapped[str] = mapped_column(String(30), nullable=False)
    actor_type: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    activity: Mapped["TicketActivity | None"] = relationship()


class Feedback(Base):
    """Customer rating of a closed ticket. Score is immutable."""

    __tablename__ = "ticket_feedback"
    __table_args__ = (
        CheckConstraint("score BETWEEN 1 AND 5", name="ck_ticket_feedback_score"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        ForeignKey("tickets.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    ticket: Mapped["Ticket"] = relationship()
