"""Overtime requests and their conversion into vacation days.

Overtime may only be submitted during the last days of a month. Each
approved hour is worth ``1 / OVERTIME_HOURS_PER_DAY`` vacation days,
credited to the vacation allotment of the approval year.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select

from timeoff.auth.models import User
from timeoff.balances.service import BalanceLedger
from timeoff.common.audit import AuditTrail
from timeoff.common.constants import (
    AuditAction,
    AuditEntity,
    ErrorCode,
    LeaveType,
    RequestStatus,
)
from timeoff.common.exceptions import (
    NotFoundException,
    SubmissionWindowError,
    ValidationError,
)
from timeoff.common.workdays import last_day_of_month, today_utc
from timeoff.config import settings
from timeoff.notifications.service import Notifier, dispatch
from timeoff.overtime.models import OvertimeRequest
from timeoff.overtime.schemas import OvertimeRollup
from timeoff.store import TransactionalStore


def _require_pending(overtime: OvertimeRequest) -> None:
    if overtime.status != RequestStatus.PENDING:
        raise ValidationError(
            ErrorCode.NOT_PENDING,
            f"Overtime request is already {overtime.status.value.lower()}.",
            field="status",
        )


def submission_window_open(today: date, window_days: int) -> bool:
    """True when *today* is within the last *window_days* days of its month."""
    return last_day_of_month(today).day - today.day < window_days


class OvertimeService:

    def __init__(
        self,
        store: TransactionalStore,
        *,
        ledger: Optional[BalanceLedger] = None,
        audit: Optional[AuditTrail] = None,
        notifier: Optional[Notifier] = None,
        hours_per_day: Optional[Decimal] = None,
        window_days: Optional[int] = None,
    ) -> None:
        self.store = store
        self.audit = audit or AuditTrail(store)
        self.ledger = ledger or BalanceLedger(store, audit=self.audit)
        self.notifier = notifier
        self.hours_per_day = Decimal(hours_per_day or settings.OVERTIME_HOURS_PER_DAY)
        self.window_days = window_days or settings.OVERTIME_WINDOW_DAYS

    def credit_days(self, hours: Decimal) -> Decimal:
        return Decimal(hours) / self.hours_per_day

    async def _load(self, request_id: uuid.UUID, *, for_update: bool = False, db=None):
        query = select(OvertimeRequest).where(OvertimeRequest.id == request_id)
        if for_update:
            query = query.with_for_update()
        if db is not None:
            overtime = (await db.execute(query)).scalars().first()
        else:
            async with self.store.transaction() as session:
                overtime = (await session.execute(query)).scalars().first()
        if overtime is None:
            raise NotFoundException("OvertimeRequest", request_id)
        return overtime

    # ─────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────

    async def create_overtime_request(
        self,
        user_id: uuid.UUID,
        hours: Decimal,
        notes: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> OvertimeRequest:
        hours = Decimal(str(hours))
        if hours <= 0:
            raise ValidationError(
                ErrorCode.INVALID_HOURS,
                "Overtime hours must be greater than zero.",
                field="hours",
            )

        today = today or today_utc()
        if not submission_window_open(today, self.window_days):
            raise SubmissionWindowError(
                f"Overtime can only be submitted during the last {self.window_days} "
                f"days of the month (from {last_day_of_month(today).day - self.window_days + 1})."
            )

        async with self.store.transaction() as db:
            if await db.get(User, user_id) is None:
                raise NotFoundException("User", user_id)
            overtime = OvertimeRequest(
                user_id=user_id,
                hours=hours,
                request_date=today,
                month=today.month,
                year=today.year,
                status=RequestStatus.PENDING,
                notes=notes,
            )
            db.add(overtime)
            await db.flush()

        await self.audit.log(
            user_id,
            AuditAction.CREATE,
            AuditEntity.OVERTIME,
            overtime.id,
            {
                "hours": float(hours),
                "month": overtime.month,
                "year": overtime.year,
                "notes": notes,
            },
        )
        await dispatch(self.notifier, "notify_overtime_submitted", overtime)
        return overtime

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    async def approve_overtime(
        self,
        request_id: uuid.UUID,
        approver_id: Optional[uuid.UUID] = None,
        year: Optional[int] = None,
    ) -> OvertimeRequest:
        """Approve and credit ``hours / OVERTIME_HOURS_PER_DAY`` vacation days."""
        overtime = await self._load(request_id)
        _require_pending(overtime)
        year = year or overtime.year

        async with self.store.balance_lock(overtime.user_id, year, LeaveType.VACATION):
            async with self.store.transaction() as db:
                overtime = await self._load(request_id, for_update=True, db=db)
                _require_pending(overtime)

                credit = self.credit_days(overtime.hours)
                change = await self.ledger.apply_credit(
                    db,
                    overtime.user_id,
                    year,
                    LeaveType.VACATION,
                    credit,
                    f"Approved overtime request {overtime.id} ({overtime.hours} hours)",
                )
                overtime.status = RequestStatus.APPROVED
                overtime.reviewed_by = approver_id
                overtime.reviewed_at = datetime.now(timezone.utc)
                await db.flush()

        await self.audit.log(
            approver_id,
            AuditAction.UPDATE,
            AuditEntity.OVERTIME,
            overtime.id,
            {
                "previousStatus": RequestStatus.PENDING.value,
                "newStatus": RequestStatus.APPROVED.value,
                "approverId": str(approver_id) if approver_id else None,
                "creditedDays": float(credit),
            },
        )
        await self.ledger.record(change)
        return overtime

    async def reject_overtime(
        self,
        request_id: uuid.UUID,
        approver_id: Optional[uuid.UUID] = None,
    ) -> OvertimeRequest:
        overtime = await self._load(request_id)
        _require_pending(overtime)

        async with self.store.transaction() as db:
            overtime = await self._load(request_id, for_update=True, db=db)
            _require_pending(overtime)
            overtime.status = RequestStatus.REJECTED
            overtime.reviewed_by = approver_id
            overtime.reviewed_at = datetime.now(timezone.utc)
            await db.flush()

        await self.audit.log(
            approver_id,
            AuditAction.UPDATE,
            AuditEntity.OVERTIME,
            overtime.id,
            {
                "previousStatus": RequestStatus.PENDING.value,
                "newStatus": RequestStatus.REJECTED.value,
                "approverId": str(approver_id) if approver_id else None,
            },
        )
        return overtime

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    async def list_overtime_requests(
        self,
        *,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[RequestStatus] = None,
        year: Optional[int] = None,
    ) -> Sequence[OvertimeRequest]:
        query = select(OvertimeRequest).order_by(OvertimeRequest.request_date.desc())
        if user_id is not None:
            query = query.where(OvertimeRequest.user_id == user_id)
        if status is not None:
            query = query.where(OvertimeRequest.status == status)
        if year is not None:
            query = query.where(OvertimeRequest.year == year)
        async with self.store.transaction() as db:
            return (await db.execute(query)).scalars().all()

    async def overtime_rollup(
        self,
        year: int,
        user_id: Optional[uuid.UUID] = None,
    ) -> list[OvertimeRollup]:
        """Approved hours per user for *year*, converted to vacation days."""
        query = (
            select(OvertimeRequest.user_id, func.sum(OvertimeRequest.hours))
            .where(
                OvertimeRequest.status == RequestStatus.APPROVED,
                OvertimeRequest.year == year,
            )
            .group_by(OvertimeRequest.user_id)
        )
        if user_id is not None:
            query = query.where(OvertimeRequest.user_id == user_id)

        async with self.store.transaction() as db:
            rows = (await db.execute(query)).all()

        return [
            OvertimeRollup(
                user_id=uid,
                year=year,
                hours=Decimal(str(total)),
                days=self.credit_days(Decimal(str(total))),
            )
            for uid, total in rows
        ]
