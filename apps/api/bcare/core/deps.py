"""FastAPI dependencies for authentication and database access."""

import logging
from typing import Generator

import jwt
from fastapi import Depends, Header, HTTPException, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from bcare.core.config import settings
from bcare.core.security import actor_from_token
from bcare.db.session import SessionLocal
from bcare.schemas.auth import Actor

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(request: Request) -> Actor:
    """
    Resolve the acting party from the Authorization bearer token.

    Raises:
        HTTPException 401: missing, malformed, expired or forged token
    """
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = header[len(BEARER_PREFIX):].strip()
    try:
        actor = actor_from_token(token)
    except (jwt.InvalidTokenError, PydanticValidationError, ValueError) as exc:
        logger.info("Rejected bearer token: %s", type(exc).__name__)
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.actor_id = actor.id
    return actor


def require_employee(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_employee:
        raise HTTPException(status_code=403, detail="Employees only")
    return actor


def verify_internal_secret(x_internal_secret: str | None = Header(default=None)) -> None:
    """Guard for /internal/scheduled/* cron endpoints."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=503, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")
