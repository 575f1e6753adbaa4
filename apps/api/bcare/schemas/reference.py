"""Read-only reference data schemas."""

from pydantic import BaseModel, ConfigDict


class LookupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str


class ComplaintCategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    complaint_code: str
    complaint_name: str


class TerminalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    terminal_code: str
    terminal_type: str | None
    location: str | None
    channel_id: int | None


class PolicyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service: str | None
    complaint_id: int
    channel_id: int | None
    sla: int
    uic_id: int | None
    description: str | None


class ResolvedPolicyRead(PolicyRead):
    """Policy selected for a (complaint, channel) pair."""

    sla_days: int
    uic_name: str | None
