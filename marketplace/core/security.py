"""
Caller identity for the order core.

Credentials are verified upstream; requests arrive with the resolved actor in
``X-Actor-Id`` / ``X-Actor-Role``. When a gateway secret is configured, the
gateway must also present it in ``X-Gateway-Token``.
"""

import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from marketplace.core.config import get_settings
from marketplace.core.enums import ActorRole


@dataclass(frozen=True)
class Actor:
    id: int
    role: ActorRole


def get_current_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
    x_gateway_token: Optional[str] = Header(None),
) -> Actor:
    """
    Resolve the caller from gateway headers.
    """
    settings = get_settings()

    if settings.GATEWAY_SHARED_SECRET:
        is_correct_token = secrets.compare_digest(
            (x_gateway_token or "").encode("utf8"),
            settings.GATEWAY_SHARED_SECRET.encode("utf8")
        )
        if not is_correct_token:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid gateway token"
            )

    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity"
        )

    try:
        return Actor(id=int(x_actor_id), role=ActorRole(x_actor_role.upper()))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed caller identity"
        )


def require_roles(*roles: ActorRole):
    """
    Dependency factory restricting an endpoint to the given roles.
    Usage: actor: Actor = Depends(require_roles(ActorRole.BUYER))
    """
    allowed = set(roles)

    def _checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Unauthorized - {', '.join(sorted(r.value for r in allowed))} only"
            )
        return actor

    return _checker
