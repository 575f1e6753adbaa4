"""ORM models."""

from bcare.db.models.reference import (
    ActivityTypeRef,
    Channel,
    ComplaintCategory,
    ComplaintPolicy,
    CustomerStatusRef,
    Division,
    EmployeeStatusRef,
    PriorityRef,
    Role,
    SenderTypeRef,
    SourceRef,
    Terminal,
)
from bcare.db.models.parties import Customer, Employee
from bcare.db.models.ticketing import Feedback, Ticket, TicketActivity, TicketStatusEvent
from bcare.db.models.jobs import Job

__all__ = [
    "ActivityTypeRef",
    "Channel",
    "ComplaintCategory",
    "ComplaintPolicy",
    "Customer",
    "CustomerStatusRef",
    "Division",
    "Employee",
    "EmployeeStatusRef",
    "Feedback",
    "Job",
    "PriorityRef",
    "Role",
    "SenderTypeRef",
    "SourceRef",
    "Terminal",
    "Ticket",
    "TicketActivity",
    "TicketStatusEvent",
]
