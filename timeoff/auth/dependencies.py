"""Auth dependencies — bearer JWT verification and role enforcement.

Tokens are issued by the external identity provider; this module only
verifies them and resolves the acting user.
"""

from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt

from timeoff.auth.models import User
from timeoff.auth.schemas import Actor
from timeoff.common.constants import ROLE_HIERARCHY, UserRole
from timeoff.common.exceptions import ForbiddenException
from timeoff.config import settings
from timeoff.dependencies import get_store
from timeoff.store import TransactionalStore


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    store: TransactionalStore = Depends(get_store),
) -> User:
    """Validate the JWT and return the active ``User`` it names."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject.")

    async with store.transaction() as db:
        user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    return user


async def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    return Actor(user_id=user.id, role=user.role)


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership.

    Respects the hierarchy, so an ADMIN passes a MANAGER check.
    """

    async def _check(actor: Actor = Depends(get_current_actor)) -> Actor:
        effective_roles = ROLE_HIERARCHY.get(actor.role, {actor.role})
        if not effective_roles.intersection(allowed_roles):
            raise ForbiddenException(
                detail=(
                    f"Role '{actor.role.value}' is not permitted. "
                    f"Required: {[r.value for r in allowed_roles]}."
                ),
            )
        return actor

    return _check
