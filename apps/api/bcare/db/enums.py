"""Reference codes and enums shared by models, services and schemas.

Reference tables (statuses, priorities, sources, ...) are seeded with
these codes; services look rows up by ``code`` rather than by id.
"""

from enum import Enum


class CustomerStatus(str, Enum):
    """Coarse, customer-visible ticket status."""

    ACCEPTED = "ACCEPTED"
    VERIFYING = "VERIFYING"
    PROCESSING = "PROCESSING"
    CLOSED = "CLOSED"
    DECLINED = "DECLINED"


class EmployeeStatus(str, Enum):
    """Fine-grained internal ticket status."""

    OPEN = "OPEN"
    HANDLEDCXC = "HANDLEDCXC"
    ESCALATED = "ESCALATED"
    CLOSED = "CLOSED"
    DECLINED = "DECLINED"
    DONE_BY_UIC = "DONE_BY_UIC"
    # Legacy terminal code; never produced by a transition but honoured
    # by the delete and closed_time rules.
    RESOLVED = "RESOLVED"


TERMINAL_EMPLOYEE_STATUSES = frozenset(
    {EmployeeStatus.CLOSED.value, EmployeeStatus.DECLINED.value, EmployeeStatus.RESOLVED.value}
)


class TicketAction(str, Enum):
    """Action tokens accepted by ticket create/update."""

    HANDLEDCXC = "HANDLEDCXC"
    ESCALATED = "ESCALATED"
    CLOSED = "CLOSED"
    DECLINED = "DECLINED"
    DONE_BY_UIC = "DONE_BY_UIC"


class StatusEventAction(str, Enum):
    """Structured status-history classification."""

    CREATED = "created"
    ESCALATED = "escalated"
    CLOSED = "closed"
    UPDATED = "updated"


class Priority(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    REGULAR = "REGULAR"


class Source(str, Enum):
    """Intake source of a ticket."""

    CONTACT_CENTER = "CONTACT_CENTER"
    CHATBOT = "CHATBOT"
    SOSMED = "SOSMED"


class ActivityType(str, Enum):
    COMMENT = "COMMENT"
    STATUS_CHANGE = "STATUS_CHANGE"
    ATTACHMENT = "ATTACHMENT"
    DELETE = "DELETE"
    EMAIL_SENT = "EMAIL_SENT"


class SenderType(str, Enum):
    CUSTOMER = "CUSTOMER"
    EMPLOYEE = "EMPLOYEE"
    SYSTEM = "SYSTEM"


class JobType(str, Enum):
    """Background job types."""

    ESCALATION_EMAIL = "escalation_email"
    DONE_BY_UIC_EMAIL = "done_by_uic_email"
    SLA_WARNING_SWEEP = "sla_warning_sweep"
    SLA_OVERDUE_SWEEP = "sla_overdue_sweep"


class JobStatus(str, Enum):
    """Background job status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


DEFAULT_JOB_STATUS = JobStatus.PENDING
