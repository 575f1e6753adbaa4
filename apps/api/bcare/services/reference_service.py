"""Reference data lookups (channels, categories, statuses, policies)."""

from __future__ import annotations

from typing import TypeVar

from sqlalchemy.orm import Session

from bcare.core.exceptions import ValidationError
from bcare.db.models import (
    Channel,
    ComplaintCategory,
    ComplaintPolicy,
    Division,
    PriorityRef,
    SourceRef,
    Terminal,
)

ModelT = TypeVar("ModelT")


def get_by_code(db: Session, model: type[ModelT], code: str) -> ModelT:
    """
    Fetch a lookup row by code.

    Missing codes mean reference data was never seeded, which is a
    deployment error rather than a client error.
    """
    row = db.query(model).filter(model.code == code).first()
    if row is None:
        raise RuntimeError(f"Reference data missing: {model.__tablename__}.code={code}")
    return row


def id_for_code(db: Session, model: type[ModelT], code: str) -> int:
    return get_by_code(db, model, code).id


def ensure_exists(db: Session, model: type[ModelT], row_id: int | None, label: str) -> None:
    """Raise ValidationError when an optional foreign key points nowhere."""
    if row_id is None:
        return
    if db.get(model, row_id) is None:
        raise ValidationError(f"Invalid {label}: {row_id}")


def validate_ticket_references(
    db: Session,
    *,
    complaint_id: int | None = None,
    issue_channel_id: int | None = None,
    priority_id: int | None = None,
    intake_source_id: int | None = None,
    terminal_id: int | None = None,
) -> None:
    ensure_exists(db, ComplaintCategory, complaint_id, "complaint_id")
    ensure_exists(db, Channel, issue_channel_id, "issue_channel_id")
    ensure_exists(db, PriorityRef, priority_id, "priority_id")
    ensure_exists(db, SourceRef, intake_source_id, "intake_source_id")
    ensure_exists(db, Terminal, terminal_id, "terminal_id")


# =============================================================================
# Listings
# =============================================================================


def list_channels(db: Session) -> list[Channel]:
    return db.query(Channel).order_by(Channel.id).all()


def list_complaint_categories(db: Session) -> list[ComplaintCategory]:
    return db.query(ComplaintCategory).order_by(ComplaintCategory.id).all()


def list_priorities(db: Session) -> list[PriorityRef]:
    return db.query(PriorityRef).order_by(PriorityRef.id).all()


def list_sources(db: Session) -> list[SourceRef]:
    return db.query(SourceRef).order_by(SourceRef.id).all()


def list_divisions(db: Session) -> list[Division]:
    return db.query(Division).order_by(Division.id).all()


def list_terminals(db: Session, *, channel_id: int | None = None) -> list[Terminal]:
    query = db.query(Terminal)
    if channel_id is not None:
        query = query.filter(Terminal.channel_id == channel_id)
    return query.order_by(Terminal.id).all()


def list_policies(
    db: Session,
    *,
    complaint_id: int | None = None,
    channel_id: int | None = None,
) -> list[ComplaintPolicy]:
    query = db.query(ComplaintPolicy)
    if complaint_id is not None:
        query = query.filter(ComplaintPolicy.complaint_id == complaint_id)
    if channel_id is not None:
        query = query.filter(ComplaintPolicy.channel_id == channel_id)
    return query.order_by(ComplaintPolicy.id).all()
