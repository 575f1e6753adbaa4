"""Activity log and history schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ActivityCreate(BaseModel):
    """Free-form activity; status changes go through PATCH /v1/tickets/{id}."""

    model_config = ConfigDict(extra="forbid")

    activity_type: Literal["COMMENT", "ATTACHMENT"] = "COMMENT"
    content: str = Field(min_length=1, max_length=5000)


class ActivityRead(BaseModel):
    id: int
    ticket_id: int
    activity_type: str
    sender_type: str
    sender_id: int | None
    content: str
    activity_time: datetime


class ActivityListResponse(BaseModel):
    items: list[ActivityRead]
    total: int
    limit: int
    offset: int


class StatusHistoryEntry(BaseModel):
    """One status transition, oldest first in history responses."""

    activity_id: int | None
    action_type: str  # created | escalated | closed | updated
    trigger_action: str | None
    from_customer_status: str | None
    to_customer_status: str | None
    from_employee_status: str | None
    to_employee_status: str | None
    actor_type: str | None
    actor_id: int | None
    content: str | None
    timestamp: datetime


class StatusHistoryResponse(BaseModel):
    ticket_id: int
    ticket_number: str
    items: list[StatusHistoryEntry]


class EmailHistoryResponse(BaseModel):
    ticket_id: int
    ticket_number: str
    items: list[ActivityRead]
