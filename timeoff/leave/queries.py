"""Request queries shared by the validator, the lifecycle and the balance adapters."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from timeoff.common.constants import LeaveType, RequestStatus
from timeoff.leave.models import TimeOffRequest

ACTIVE_STATUSES = (RequestStatus.PENDING, RequestStatus.APPROVED)


def _year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def _charged_to_year(year: int):
    """Approved requests whose days were taken from *year*'s balance."""
    first, last = _year_bounds(year)
    return or_(
        TimeOffRequest.balance_year == year,
        and_(
            TimeOffRequest.balance_year.is_(None),
            TimeOffRequest.start_date >= first,
            TimeOffRequest.start_date <= last,
        ),
    )


async def find_request_by_id(
    db: AsyncSession,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Optional[TimeOffRequest]:
    query = select(TimeOffRequest).where(TimeOffRequest.id == request_id)
    if for_update:
        query = query.with_for_update()
    return (await db.execute(query)).scalars().first()


async def count_requests_in_year(
    db: AsyncSession,
    user_id: uuid.UUID,
    year: int,
) -> int:
    """Requests of any status whose start date falls in *year*."""
    first, last = _year_bounds(year)
    result = await db.execute(
        select(func.count(TimeOffRequest.id)).where(
            TimeOffRequest.user_id == user_id,
            TimeOffRequest.start_date >= first,
            TimeOffRequest.start_date <= last,
        )
    )
    return result.scalar_one()


async def find_overlapping_approved_requests(
    db: AsyncSession,
    user_id: uuid.UUID,
    start: date,
    end: date,
) -> Sequence[TimeOffRequest]:
    """Approved requests whose closed range intersects [start, end]."""
    result = await db.execute(
        select(TimeOffRequest)
        .where(
            TimeOffRequest.user_id == user_id,
            TimeOffRequest.status == RequestStatus.APPROVED,
            TimeOffRequest.start_date <= end,
            TimeOffRequest.end_date >= start,
        )
        .order_by(TimeOffRequest.start_date)
    )
    return result.scalars().all()


async def find_active_duplicate(
    db: AsyncSession,
    user_id: uuid.UUID,
    leave_type: LeaveType,
    start: date,
    end: date,
) -> Optional[TimeOffRequest]:
    """A pending or approved request with exactly these keys, if any."""
    result = await db.execute(
        select(TimeOffRequest).where(
            TimeOffRequest.user_id == user_id,
            TimeOffRequest.leave_type == leave_type,
            TimeOffRequest.start_date == start,
            TimeOffRequest.end_date == end,
            TimeOffRequest.status.in_(ACTIVE_STATUSES),
        )
    )
    return result.scalars().first()


async def sum_approved_working_days(
    db: AsyncSession,
    user_id: uuid.UUID,
    year: int,
    leave_type: LeaveType,
) -> Decimal:
    """Cached working days of approved requests of one type charged to *year*."""
    result = await db.execute(
        select(func.coalesce(func.sum(TimeOffRequest.working_days), 0)).where(
            TimeOffRequest.user_id == user_id,
            TimeOffRequest.leave_type == leave_type,
            TimeOffRequest.status == RequestStatus.APPROVED,
            _charged_to_year(year),
        )
    )
    return Decimal(result.scalar_one())


async def used_days_by_type(
    db: AsyncSession,
    user_id: uuid.UUID,
    year: int,
) -> dict[LeaveType, Decimal]:
    result = await db.execute(
        select(TimeOffRequest.leave_type, func.sum(TimeOffRequest.working_days))
        .where(
            TimeOffRequest.user_id == user_id,
            TimeOffRequest.status == RequestStatus.APPROVED,
            _charged_to_year(year),
        )
        .group_by(TimeOffRequest.leave_type)
    )
    used = {lt: Decimal("0") for lt in LeaveType}
    for leave_type, total in result.all():
        used[LeaveType(leave_type)] = Decimal(total or 0)
    return used
