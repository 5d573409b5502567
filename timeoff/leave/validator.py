"""Pre-submission checks for time-off requests.

All rules run; the result lists every violation so a caller can show
targeted messages. The lifecycle raises on the first one.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timeoff.balances.service import BalanceLedger
from timeoff.common.constants import ErrorCode, LeaveType
from timeoff.common.exceptions import format_days
from timeoff.common.workdays import count_working_days, iter_dates, today_utc
from timeoff.config import settings
from timeoff.leave.queries import count_requests_in_year, find_overlapping_approved_requests
from timeoff.leave.schemas import ValidationIssue, ValidationResult


@dataclass(frozen=True)
class ValidationRules:
    min_notice_days: int = 7
    max_consecutive_days: int = 30
    max_requests_per_year: int = 20
    blackout_dates: frozenset[date] = field(default_factory=frozenset)

    @classmethod
    def from_settings(cls) -> ValidationRules:
        return cls(
            min_notice_days=settings.MIN_NOTICE_DAYS,
            max_consecutive_days=settings.MAX_CONSECUTIVE_DAYS,
            max_requests_per_year=settings.MAX_REQUESTS_PER_YEAR,
            blackout_dates=frozenset(settings.blackout_dates_list),
        )


class TimeOffRequestValidator:

    def __init__(self, ledger: BalanceLedger, rules: Optional[ValidationRules] = None) -> None:
        self.ledger = ledger
        self.rules = rules or ValidationRules.from_settings()

    async def validate(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        leave_type: LeaveType,
        start: date,
        end: date,
        *,
        today: Optional[date] = None,
    ) -> ValidationResult:
        today = today or today_utc()
        rules = self.rules
        errors: list[ValidationIssue] = []
        working_days = count_working_days(start, end)

        # ── Date range ──
        if start > end:
            errors.append(ValidationIssue(
                code=ErrorCode.INVALID_RANGE,
                message="Start date must be on or before end date.",
                field="start_date",
            ))

        blackout = sorted(d for d in iter_dates(start, end) if d in rules.blackout_dates)
        if blackout:
            errors.append(ValidationIssue(
                code=ErrorCode.BLACKOUT_DATE,
                message=f"Time off cannot include blackout date {blackout[0].isoformat()}.",
                field="start_date",
            ))

        if working_days > rules.max_consecutive_days:
            errors.append(ValidationIssue(
                code=ErrorCode.MAX_CONSECUTIVE_DAYS,
                message=(
                    f"Requests are limited to {rules.max_consecutive_days} consecutive "
                    f"working days; this one covers {working_days}."
                ),
                field="end_date",
            ))

        # ── Notice period (today and past dates are backfills) ──
        if start > today:
            notice = (start - today).days
            if notice < rules.min_notice_days:
                errors.append(ValidationIssue(
                    code=ErrorCode.INSUFFICIENT_NOTICE,
                    message=(
                        f"At least {rules.min_notice_days} days notice is required; "
                        f"{notice} given."
                    ),
                    field="start_date",
                ))

        # ── Overlap with approved requests ──
        overlapping = await find_overlapping_approved_requests(db, user_id, start, end)
        if overlapping:
            first = overlapping[0]
            errors.append(ValidationIssue(
                code=ErrorCode.OVERLAPPING_REQUEST,
                message=(
                    "Dates overlap an approved request from "
                    f"{first.start_date.isoformat()} to {first.end_date.isoformat()}."
                ),
            ))

        # ── Yearly cap ──
        existing = await count_requests_in_year(db, user_id, start.year)
        if existing >= rules.max_requests_per_year:
            errors.append(ValidationIssue(
                code=ErrorCode.REQUEST_LIMIT_EXCEEDED,
                message=(
                    f"The limit of {rules.max_requests_per_year} requests for "
                    f"{start.year} has been reached."
                ),
            ))

        # ── Balance ──
        balance = await self.ledger.load(db, user_id, start.year, leave_type)
        if working_days > balance.remaining_days:
            errors.append(ValidationIssue(
                code=ErrorCode.INSUFFICIENT_BALANCE,
                message=(
                    f"Insufficient {balance.leave_type.value} days. "
                    f"Required: {working_days}, "
                    f"Available: {format_days(balance.remaining_days)}"
                ),
                field="leave_type",
            ))

        return ValidationResult(errors=errors)
