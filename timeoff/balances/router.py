"""Balance router — own balances, used-day summary, admin view and adjustments."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from timeoff.auth.dependencies import get_current_actor, require_role
from timeoff.auth.schemas import Actor
from timeoff.balances.schemas import Balance, UsedDaysSummary
from timeoff.balances.service import BalanceLedger
from timeoff.common.constants import LeaveType, UserRole
from timeoff.common.workdays import today_utc
from timeoff.dependencies import get_ledger

router = APIRouter(prefix="", tags=["balances"])


class BalanceAdjustRequest(BaseModel):
    leave_type: LeaveType
    year: int = Field(..., ge=2000, le=2100)
    days: Decimal = Field(..., description="Positive deducts, negative restores")
    reason: str = Field(..., min_length=1, max_length=500)


def _year(year: Optional[int]) -> int:
    return year or today_utc().year


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[Balance])
async def my_balances(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    actor: Actor = Depends(get_current_actor),
    ledger: BalanceLedger = Depends(get_ledger),
):
    """All four leave-type balances for the caller, created on first read."""
    return await ledger.get_balances(actor.user_id, _year(year))


# ── GET /summary ────────────────────────────────────────────────────

@router.get("/summary", response_model=UsedDaysSummary)
async def my_used_days(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    actor: Actor = Depends(get_current_actor),
    ledger: BalanceLedger = Depends(get_ledger),
):
    return await ledger.used_days_summary(actor.user_id, _year(year))


# ── GET /{user_id} ──────────────────────────────────────────────────

@router.get("/{user_id}", response_model=list[Balance])
async def user_balances(
    user_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    ledger: BalanceLedger = Depends(get_ledger),
):
    return await ledger.get_balances(user_id, _year(year))


# ── POST /{user_id}/adjust ──────────────────────────────────────────

@router.post("/{user_id}/adjust", response_model=Balance)
async def adjust_balance(
    user_id: uuid.UUID,
    body: BalanceAdjustRequest,
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    ledger: BalanceLedger = Depends(get_ledger),
):
    """Manual correction through the same audited deduct/restore path.

    The response is the balance as stored. With the aggregated layout used
    days only count approved requests, so a manual deduction shows up as a
    lower total rather than higher used days.
    """
    if body.days >= 0:
        return await ledger.deduct_balance(
            user_id, body.year, body.leave_type, body.days, body.reason,
        )
    return await ledger.restore_balance(
        user_id, body.year, body.leave_type, -body.days, body.reason,
    )
