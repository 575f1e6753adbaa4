"""Ticket access control - centralized permission checks for ticket operations.

Actors:
- Customers: create for themselves, read their own tickets, comment.
- CXC agents (agent role in the CXC division): full authority.
- Other employees (specialist divisions): read and act on tickets
  ESCALATED to their division (policy.uic_id), plus tickets they are
  responsible for. Their only transition is DONE_BY_UIC; otherwise
  they may append division notes.
"""

from sqlalchemy import ColumnElement, and_, or_, true

from bcare.core.exceptions import ForbiddenError
from bcare.db.enums import EmployeeStatus, TicketAction
from bcare.db.models import ComplaintPolicy, EmployeeStatusRef, Ticket
from bcare.schemas.auth import Actor


def is_escalated_to_division(ticket: Ticket, division_id: int | None) -> bool:
    """True when the ticket is currently ESCALATED to ``division_id``."""
    if division_id is None or ticket.policy is None:
        return False
    return (
        ticket.employee_status.code == EmployeeStatus.ESCALATED.value
        and ticket.policy.uic_id == division_id
    )


def can_view_ticket(ticket: Ticket, actor: Actor) -> bool:
    if actor.is_customer:
        return ticket.customer_id == actor.id
    if actor.is_cxc_agent:
        return True
    return (
        is_escalated_to_division(ticket, actor.division_id)
        or ticket.responsible_employee_id == actor.id
    )


def check_ticket_access(ticket: Ticket, actor: Actor) -> None:
    """
    Raise ForbiddenError unless the actor may read this ticket.

    Callers look the ticket up first so unknown ids stay 404.
    """
    if not can_view_ticket(ticket, actor):
        raise ForbiddenError("You do not have access to this ticket")


def check_can_update(ticket: Ticket, actor: Actor, action: TicketAction | None) -> None:
    """
    Authorize a ticket update before any field is touched.

    ``action`` is None for note-only edits.
    """
    if actor.is_customer:
        raise ForbiddenError("Customers cannot update tickets")

    if actor.is_cxc_agent:
        if action == TicketAction.DONE_BY_UIC:
            raise ForbiddenError("DONE_BY_UIC can only be set by the specialist division")
        return

    if action not in (None, TicketAction.DONE_BY_UIC):
        raise ForbiddenError("Only CXC agents can perform this action")
    if not is_escalated_to_division(ticket, actor.division_id):
        raise ForbiddenError("Ticket is not escalated to your division")


def check_can_delete(actor: Actor) -> None:
    if not actor.is_cxc_agent:
        raise ForbiddenError("Only CXC agents can delete tickets")


def check_can_create(actor: Actor, *, customer_id: int | None, action: str | None) -> None:
    if actor.is_customer:
        if customer_id is not None and customer_id != actor.id:
            raise ForbiddenError("Customers can only create tickets for themselves")
        if action is not None:
            raise ForbiddenError("Customers cannot set a ticket action")
        return
    if not actor.is_cxc_agent:
        raise ForbiddenError("Only CXC agents can create tickets for customers")


def visible_tickets_clause(actor: Actor) -> ColumnElement[bool]:
    """SQL filter equivalent of can_view_ticket, for list queries."""
    if actor.is_customer:
        return Ticket.customer_id == actor.id
    if actor.is_cxc_agent:
        return true()
    escalated_here = and_(
        Ticket.employee_status.has(EmployeeStatusRef.code == EmployeeStatus.ESCALATED.value),
        Ticket.policy.has(ComplaintPolicy.uic_id == actor.division_id),
    )
    return or_(escalated_here, Ticket.responsible_employee_id == actor.id)
