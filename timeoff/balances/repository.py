"""Balance storage adapters.

Two row layouts are found in deployed databases:

* ``per_type`` — ``time_off_balances``: total/used/remaining per leave type.
* ``aggregated`` — ``user_balances``: one row per user and year holding
  only the remaining days of each type. Used days are derived from the
  cached working days of approved requests, and total = remaining + used.

Each adapter reads and writes its own layout and hands the ledger the
canonical ``Balance``; the ledger never looks at rows directly.
"""

from __future__ import annotations

import abc
import uuid
from decimal import Decimal
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timeoff.balances.models import AGGREGATED_COLUMNS, AggregatedBalance, TimeOffBalance
from timeoff.balances.schemas import Balance
from timeoff.common.constants import BalanceSchema, LeaveType
from timeoff.leave.queries import sum_approved_working_days


class BalanceRepository(abc.ABC):
    """Normalises one storage layout to ``Balance``."""

    @abc.abstractmethod
    async def find(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        *,
        for_update: bool = False,
    ) -> Optional[Balance]:
        """Return the balance, or ``None`` when no row exists yet."""

    @abc.abstractmethod
    async def create_defaults(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        allotments: Mapping[LeaveType, Decimal],
    ) -> None:
        """Insert the default row(s) needed to read *leave_type* for the year."""

    @abc.abstractmethod
    async def save(self, db: AsyncSession, balance: Balance) -> None:
        """Persist *balance* over its existing row."""


# ── Per-type rows ───────────────────────────────────────────────────

class PerTypeBalanceRepository(BalanceRepository):

    async def _row(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        leave_type: LeaveType,
        *,
        for_update: bool = False,
    ) -> Optional[TimeOffBalance]:
        query = select(TimeOffBalance).where(
            TimeOffBalance.user_id == user_id,
            TimeOffBalance.year == year,
            TimeOffBalance.leave_type == leave_type,
        )
        if for_update:
            query = query.with_for_update()
        return (await db.execute(query)).scalars().first()

    async def find(self, db, user_id, year, leave_type, *, for_update=False):
        row = await self._row(db, user_id, year, leave_type, for_update=for_update)
        if row is None:
            return None
        return Balance(
            user_id=row.user_id,
            year=row.year,
            leave_type=row.leave_type,
            total_days=Decimal(row.total_days),
            used_days=Decimal(row.used_days),
            remaining_days=Decimal(row.remaining_days),
        )

    async def create_defaults(self, db, user_id, year, leave_type, allotments):
        allotment = Decimal(allotments[leave_type])
        db.add(
            TimeOffBalance(
                user_id=user_id,
                year=year,
                leave_type=leave_type,
                total_days=allotment,
                used_days=Decimal("0"),
                remaining_days=allotment,
            )
        )
        await db.flush()

    async def save(self, db, balance):
        row = await self._row(db, balance.user_id, balance.year, balance.leave_type)
        row.total_days = balance.total_days
        row.used_days = balance.used_days
        row.remaining_days = balance.remaining_days
        await db.flush()


# ── Aggregated row ──────────────────────────────────────────────────

class AggregatedBalanceRepository(BalanceRepository):

    async def _row(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        *,
        for_update: bool = False,
    ) -> Optional[AggregatedBalance]:
        query = select(AggregatedBalance).where(
            AggregatedBalance.user_id == user_id,
            AggregatedBalance.year == year,
        )
        if for_update:
            query = query.with_for_update()
        return (await db.execute(query)).scalars().first()

    async def find(self, db, user_id, year, leave_type, *, for_update=False):
        row = await self._row(db, user_id, year, for_update=for_update)
        if row is None:
            return None
        leave_type = LeaveType(leave_type)
        remaining = Decimal(getattr(row, AGGREGATED_COLUMNS[leave_type]))
        used = await sum_approved_working_days(db, user_id, year, leave_type)
        return Balance(
            user_id=user_id,
            year=year,
            leave_type=leave_type,
            total_days=remaining + used,
            used_days=used,
            remaining_days=remaining,
        )

    async def create_defaults(self, db, user_id, year, leave_type, allotments):
        db.add(
            AggregatedBalance(
                user_id=user_id,
                year=year,
                **{
                    column: Decimal(allotments[lt])
                    for lt, column in AGGREGATED_COLUMNS.items()
                },
            )
        )
        await db.flush()

    async def save(self, db, balance):
        # Only remaining days are stored; used days follow the request rows
        row = await self._row(db, balance.user_id, balance.year)
        setattr(row, AGGREGATED_COLUMNS[balance.leave_type], balance.remaining_days)
        await db.flush()


def build_balance_repository(schema: str | BalanceSchema) -> BalanceRepository:
    """Pick the adapter for the configured layout (composition root only)."""
    schema = BalanceSchema(schema)
    if schema == BalanceSchema.aggregated:
        return AggregatedBalanceRepository()
    return PerTypeBalanceRepository()
