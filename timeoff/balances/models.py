"""Balance ORM models: per-type ledger rows and the aggregated per-user row.

Both layouts exist in deployed databases. Only one is active at a time,
chosen by ``BALANCE_SCHEMA``; see ``timeoff.balances.repository``.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from timeoff.common.constants import LeaveType
from timeoff.common.models import DAYS, TimestampMixin
from timeoff.database import Base


class TimeOffBalance(Base, TimestampMixin):
    """One row per (user, year, leave type)."""

    __tablename__ = "time_off_balances"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), nullable=False,
    )
    total_days: Mapped[Decimal] = mapped_column(DAYS, nullable=False, default=Decimal("0"))
    used_days: Mapped[Decimal] = mapped_column(DAYS, nullable=False, default=Decimal("0"))
    remaining_days: Mapped[Decimal] = mapped_column(DAYS, nullable=False, default=Decimal("0"))

    __table_args__ = (
        sa.UniqueConstraint("user_id", "year", "leave_type", name="uq_time_off_balance"),
    )


class AggregatedBalance(Base, TimestampMixin):
    """One row per (user, year) holding the remaining days of every type."""

    __tablename__ = "user_balances"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    vacation_days: Mapped[Decimal] = mapped_column(DAYS, nullable=False, default=Decimal("0"))
    sick_days: Mapped[Decimal] = mapped_column(DAYS, nullable=False, default=Decimal("0"))
    paid_leave_days: Mapped[Decimal] = mapped_column(DAYS, nullable=False, default=Decimal("0"))
    personal_days: Mapped[Decimal] = mapped_column(DAYS, nullable=False, default=Decimal("0"))

    __table_args__ = (
        sa.UniqueConstraint("user_id", "year", name="uq_user_balance_year"),
    )


# Leave type → remaining-days column on AggregatedBalance
AGGREGATED_COLUMNS: dict[LeaveType, str] = {
    LeaveType.VACATION: "vacation_days",
    LeaveType.SICK: "sick_days",
    LeaveType.PAID_LEAVE: "paid_leave_days",
    LeaveType.PERSONAL: "personal_days",
}
