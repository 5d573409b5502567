"""Balance ledger — create-on-read balances with atomic, audited mutations.

Two layers:

* ``apply_change`` / ``apply_credit`` mutate a balance inside a caller's
  transaction and return a ``BalanceChange``; the request lifecycle uses
  them so the request row and the balance commit together.
* ``deduct_balance`` / ``restore_balance`` / ``credit_balance`` are
  standalone operations: lock, one transaction, audit after commit.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timeoff.auth.models import User
from timeoff.balances.schemas import Balance, BalanceChange, UsedDaysSummary
from timeoff.common.audit import AuditTrail
from timeoff.common.constants import AuditAction, AuditEntity, LeaveType
from timeoff.common.exceptions import InsufficientBalanceError, NotFoundException
from timeoff.config import settings
from timeoff.leave.queries import used_days_by_type
from timeoff.store import TransactionalStore


def default_allotments() -> dict[LeaveType, Decimal]:
    return {
        LeaveType.VACATION: settings.DEFAULT_VACATION_DAYS,
        LeaveType.SICK: settings.DEFAULT_SICK_DAYS,
        LeaveType.PAID_LEAVE: settings.DEFAULT_PAID_LEAVE_DAYS,
        LeaveType.PERSONAL: settings.DEFAULT_PERSONAL_DAYS,
    }


class BalanceLedger:
    """Per (user, year, leave type) balances."""

    def __init__(
        self,
        store: TransactionalStore,
        *,
        audit: Optional[AuditTrail] = None,
        allotments: Optional[Mapping[LeaveType, Decimal]] = None,
    ) -> None:
        self.store = store
        self.audit = audit or AuditTrail(store)
        self.allotments = dict(allotments or default_allotments())

    # ─────────────────────────────────────────────────────────────────
    # In-transaction primitives
    # ─────────────────────────────────────────────────────────────────

    async def load(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        *,
        for_update: bool = False,
    ) -> Balance:
        """Read a balance, creating the default allotment on first access."""
        leave_type = LeaveType(leave_type)
        repo = self.store.balances

        balance = await repo.find(db, user_id, year, leave_type, for_update=for_update)
        if balance is not None:
            return balance

        if await db.get(User, user_id) is None:
            raise NotFoundException("User", user_id)

        await repo.create_defaults(db, user_id, year, leave_type, self.allotments)
        return await repo.find(db, user_id, year, leave_type, for_update=for_update)

    async def apply_change(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        days: Decimal,
        reason: str,
    ) -> BalanceChange:
        """Move *days* from remaining to used (negative *days* moves them back).

        Only a positive deduction can fail the sufficiency check.
        """
        days = Decimal(days)
        balance = await self.load(db, user_id, year, leave_type, for_update=True)

        new_remaining = balance.remaining_days - days
        if days > 0 and new_remaining < 0:
            raise InsufficientBalanceError(
                balance.leave_type, required=days, available=balance.remaining_days,
            )

        updated = balance.model_copy(
            update={
                "used_days": balance.used_days + days,
                "remaining_days": new_remaining,
            }
        )
        await self.store.balances.save(db, updated)
        return BalanceChange(
            balance=updated,
            previous_remaining=balance.remaining_days,
            change=-days,
            reason=reason,
        )

    async def apply_credit(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        days: Decimal,
        reason: str,
    ) -> BalanceChange:
        """Grow the allotment by *days*; used days are untouched."""
        days = Decimal(days)
        balance = await self.load(db, user_id, year, leave_type, for_update=True)
        updated = balance.model_copy(
            update={
                "total_days": balance.total_days + days,
                "remaining_days": balance.remaining_days + days,
            }
        )
        await self.store.balances.save(db, updated)
        return BalanceChange(
            balance=updated,
            previous_remaining=balance.remaining_days,
            change=days,
            reason=reason,
        )

    async def record(self, change: BalanceChange) -> None:
        """Audit a committed change against the balance owner."""
        await self.audit.log(
            change.balance.user_id,
            AuditAction.UPDATE,
            AuditEntity.BALANCE,
            change.balance.key,
            change.audit_details(),
        )

    # ─────────────────────────────────────────────────────────────────
    # Standalone operations
    # ─────────────────────────────────────────────────────────────────

    async def get_balance(
        self,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
    ) -> Balance:
        async with self.store.balance_lock(user_id, year, leave_type):
            async with self.store.transaction() as db:
                return await self.load(db, user_id, year, leave_type)

    async def get_balances(self, user_id: uuid.UUID, year: int) -> list[Balance]:
        return [await self.get_balance(user_id, year, lt) for lt in LeaveType]

    async def deduct_balance(
        self,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        days: Decimal,
        reason: str,
    ) -> Balance:
        """Deduct *days* atomically; raises ``InsufficientBalanceError``.

        Returns the balance as stored afterwards. On the aggregated layout a
        deduction not backed by an approved request lowers the total instead
        of raising the used days.
        """
        async with self.store.balance_lock(user_id, year, leave_type):
            async with self.store.transaction() as db:
                change = await self.apply_change(db, user_id, year, leave_type, days, reason)
                stored = await self.store.balances.find(db, user_id, year, leave_type)
        await self.record(change)
        return stored

    async def restore_balance(
        self,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        days: Decimal,
        reason: str,
    ) -> Balance:
        """Inverse of ``deduct_balance``; never fails the sufficiency check."""
        return await self.deduct_balance(user_id, year, leave_type, -Decimal(days), reason)

    async def credit_balance(
        self,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        days: Decimal,
        reason: str,
    ) -> Balance:
        async with self.store.balance_lock(user_id, year, leave_type):
            async with self.store.transaction() as db:
                change = await self.apply_credit(db, user_id, year, leave_type, days, reason)
                stored = await self.store.balances.find(db, user_id, year, leave_type)
        await self.record(change)
        return stored

    async def used_days_summary(self, user_id: uuid.UUID, year: int) -> UsedDaysSummary:
        async with self.store.transaction() as db:
            if await db.get(User, user_id) is None:
                raise NotFoundException("User", user_id)
            used = await used_days_by_type(db, user_id, year)
        return UsedDaysSummary(user_id=user_id, year=year, used=used)
