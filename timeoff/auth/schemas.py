"""Auth Pydantic v2 schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict

from timeoff.common.constants import UserRole


class Actor(BaseModel):
    """Identity supplied for every operation: who is acting, in which role."""

    model_config = ConfigDict(frozen=True)

    user_id: uuid.UUID
    role: UserRole = UserRole.EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_act_for(self, user_id: uuid.UUID) -> bool:
        """Owner-or-admin check used by every mutating operation."""
        return self.is_admin or self.user_id == user_id

