"""Authentication-related Pydantic schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from bcare.core.config import settings


class ActorKind(str, Enum):
    """Which party a bearer token belongs to."""
    CUSTOMER = "customer"
    EMPLOYEE = "employee"


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: str  # customer_id or employee_id
    kind: ActorKind
    role_id: int | None = None
    division_id: int | None = None


class Actor(BaseModel):
    """
    The party performing a request.

    Returned by the get_current_actor dependency and passed explicitly
    into every service operation that needs authorization.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    kind: ActorKind
    role_id: int | None = None
    division_id: int | None = None

    @property
    def is_customer(self) -> bool:
        return self.kind == ActorKind.CUSTOMER

    @property
    def is_employee(self) -> bool:
        return self.kind == ActorKind.EMPLOYEE

    @property
    def is_cxc_agent(self) -> bool:
        """Front-line triage agent: agent role inside the CXC division."""
        return (
            self.is_employee
            and self.role_id == settings.CXC_ROLE_ID
            and self.division_id == settings.CXC_DIVISION_ID
        )
