"""Security utilities for bearer access tokens."""

from datetime import datetime, timedelta, timezone

import jwt

from bcare.core.config import settings
from bcare.schemas.auth import Actor, ActorKind, TokenPayload


# =============================================================================
# Access Token (JWT bearer)
# =============================================================================

def create_access_token(actor: Actor, expires_hours: int | None = None) -> str:
    """
    Create signed access JWT for an actor.

    Always signs with current secret (JWT_SECRET).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(actor.id),
        "kind": actor.kind.value,
        "role_id": actor.role_id,
        "division_id": actor.division_id,
        "iat": now,
        "exp": now + timedelta(hours=expires_hours or settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    """
    Decode and verify access JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error: jwt.InvalidTokenError | None = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error or jwt.InvalidTokenError("No JWT secret configured")


def actor_from_token(token: str) -> Actor:
    """Decode a bearer token into the acting party."""
    payload = TokenPayload.model_validate(decode_access_token(token))
    return Actor(
        id=int(payload.sub),
        kind=ActorKind(payload.kind),
        role_id=payload.role_id,
        division_id=payload.division_id,
    )
