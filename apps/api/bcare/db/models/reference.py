"""Reference data: lookup tables and complaint policies (SLA rules)."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bcare.db.base import Base


class _CodeLookup:
    """Columns shared by the small code/name lookup tables."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class CustomerStatusRef(_CodeLookup, Base):
    __tablename__ = "customer_statuses"


class EmployeeStatusRef(_CodeLookup, Base):
    __tablename__ = "employee_statuses"


class PriorityRef(_CodeLookup, Base):
    __tablename__ = "priorities"


class SourceRef(_CodeLookup, Base):
    __tablename__ = "sources"


class ActivityTypeRef(_CodeLookup, Base):
    __tablename__ = "activity_types"


class SenderTypeRef(_CodeLookup, Base):
    __tablename__ = "sender_types"


class Role(_CodeLookup, Base):
    __tablename__ = "roles"


class Division(_CodeLookup, Base):
    """Organisational unit; specialist divisions are the escalation UICs."""

    __tablename__ = "divisions"


class Channel(_CodeLookup, Base):
    """Intake channel (ATM, mobile banking, QRIS, ...)."""

    __tablename__ = "channels"


class ComplaintCategory(Base):
    __tablename__ = "complaint_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    complaint_code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    complaint_name: Mapped[str] = mapped_column(String(200), nullable=False)


class Terminal(Base):
    __tablename__ = "terminals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    terminal_code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    terminal_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    channel_id: Mapped[int | None] = mapped_column(
        ForeignKey("channels.id", ondelete="SET NULL"), nullable=True
    )


class ComplaintPolicy(Base):
    """
    SLA rule for a (complaint category, channel) pair.

    ``sla`` is expressed in days; ``uic_id`` is the division a ticket
    is escalated to. Several rows may match the same pair.
    """

    __tablename__ = "complaint_policies"
    __table_args__ = (
        Index("idx_policies_complaint_channel", "complaint_id", "channel_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    service: Mapped[str | None] = mapped_column(String(100), nullable=True)
    complaint_id: Mapped[int] = mapped_column(
        ForeignKey("complaint_categories.id", ondelete="CASCADE"), nullable=False
    )
    channel_id: Mapped[int | None] = mapped_column(
        ForeignKey("channels.id", ondelete="SET NULL"), nullable=True
    )
    sla: Mapped[int] = mapped_column(Integer, nullable=False)
    uic_id: Mapped[int | None] = mapped_column(
        ForeignKey("divisions.id", ondelete="SET NULL"), nullable=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    complaint: Mapped["ComplaintCategory"] = relationship()
    channel: Mapped["Channel | None"] = relationship()
    uic: Mapped["Division | None"] = relationship()
