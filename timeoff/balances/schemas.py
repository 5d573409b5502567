"""Balance Pydantic v2 schemas — the canonical balance shape and ledger results."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from timeoff.common.constants import LeaveType


class Balance(BaseModel):
    """Unified balance, whatever layout the rows are stored in.

    ``remaining_days == total_days - used_days`` after every ledger mutation.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    year: int
    leave_type: LeaveType
    total_days: Decimal
    used_days: Decimal
    remaining_days: Decimal

    @property
    def key(self) -> str:
        return f"{self.user_id}:{self.year}:{self.leave_type.value}"


class BalanceChange(BaseModel):
    """Outcome of one ledger mutation, kept until it can be audited."""

    balance: Balance
    previous_remaining: Decimal
    change: Decimal
    reason: str

    def audit_details(self) -> dict[str, Any]:
        return {
            "type": self.balance.leave_type.value,
            "previousBalance": float(self.previous_remaining),
            "newBalance": float(self.balance.remaining_days),
            "change": float(self.change),
            "reason": self.reason,
            "year": self.balance.year,
        }


class UsedDaysSummary(BaseModel):
    """Working days consumed by approved requests, per leave type."""

    user_id: uuid.UUID
    year: int
    used: dict[LeaveType, Decimal]
