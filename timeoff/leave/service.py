"""Time-off request lifecycle — create, approve, reject, delete, and reads.

States: PENDING → APPROVED | REJECTED, each reached exactly once. A
request in any state may be deleted; deleting an APPROVED request gives
its working days back to the balance.

Each mutation runs in one transaction under the balance lock of the
request's (user, year, type). Audit entries and notifications follow the
commit and cannot undo it.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select

from timeoff.auth.models import User
from timeoff.auth.schemas import Actor
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
    DuplicateRequestError,
    ForbiddenException,
    NotFoundException,
    ValidationError,
)
from timeoff.common.pagination import PaginatedResponse, PaginationParams, paginate
from timeoff.common.workdays import DateLike, count_working_days, to_calendar_date
from timeoff.leave.models import TimeOffRequest
from timeoff.leave.queries import find_active_duplicate, find_request_by_id
from timeoff.leave.schemas import TimeOffRequestOut, ValidationResult
from timeoff.leave.validator import TimeOffRequestValidator
from timeoff.notifications.service import Notifier, dispatch
from timeoff.store import TransactionalStore


def _require_pending(request: TimeOffRequest) -> None:
    if request.status != RequestStatus.PENDING:
        raise ValidationError(
            ErrorCode.NOT_PENDING,
            f"Time off request is already {request.status.value.lower()}.",
            field="status",
        )


class TimeOffRequestService:
    """Request state machine wired to the ledger, audit trail and notifier."""

    def __init__(
        self,
        store: TransactionalStore,
        *,
        ledger: Optional[BalanceLedger] = None,
        validator: Optional[TimeOffRequestValidator] = None,
        audit: Optional[AuditTrail] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.store = store
        self.audit = audit or AuditTrail(store)
        self.ledger = ledger or BalanceLedger(store, audit=self.audit)
        self.validator = validator or TimeOffRequestValidator(self.ledger)
        self.notifier = notifier

    # ─────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────

    async def validate_request(
        self,
        user_id: uuid.UUID,
        leave_type: LeaveType,
        start: DateLike,
        end: DateLike,
        *,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """Dry-run every rule without creating anything."""
        start_date, end_date = to_calendar_date(start), to_calendar_date(end)
        async with self.store.transaction() as db:
            return await self.validator.validate(
                db, user_id, LeaveType(leave_type), start_date, end_date, today=today,
            )

    async def create_request(
        self,
        user_id: uuid.UUID,
        leave_type: LeaveType,
        start: DateLike,
        end: DateLike,
        reason: Optional[str] = None,
        *,
        actor: Optional[Actor] = None,
        today: Optional[date] = None,
    ) -> TimeOffRequest:
        """Validate and store a new PENDING request.

        Raises ``ValidationError`` with the first violated rule's code, or
        ``DuplicateRequestError`` when an identical active request exists.
        """
        if actor is not None and not actor.can_act_for(user_id):
            raise ForbiddenException("You can only submit time off requests for yourself.")

        leave_type = LeaveType(leave_type)
        start_date, end_date = to_calendar_date(start), to_calendar_date(end)

        async with self.store.balance_lock(user_id, start_date.year, leave_type):
            async with self.store.transaction() as db:
                if await db.get(User, user_id) is None:
                    raise NotFoundException("User", user_id)

                duplicate = await find_active_duplicate(
                    db, user_id, leave_type, start_date, end_date,
                )
                if duplicate is not None:
                    raise DuplicateRequestError(duplicate.id)

                result = await self.validator.validate(
                    db, user_id, leave_type, start_date, end_date, today=today,
                )
                if not result.is_valid:
                    first = result.errors[0]
                    raise ValidationError(
                        first.code,
                        first.message,
                        field=first.field,
                        errors={issue.code.value: [issue.message] for issue in result.errors},
                    )

                working_days = count_working_days(start_date, end_date)

                request = TimeOffRequest(
                    user_id=user_id,
                    leave_type=leave_type,
                    start_date=start_date,
                    end_date=end_date,
                    working_days=working_days,
                    status=RequestStatus.PENDING,
                    reason=reason,
                )
                db.add(request)
                await db.flush()

        await self.audit.log(
            actor.user_id if actor else user_id,
            AuditAction.CREATE,
            AuditEntity.REQUEST,
            request.id,
            {
                "type": leave_type.value,
                "startDate": start_date.isoformat(),
                "endDate": end_date.isoformat(),
                "workingDays": working_days,
                "reason": reason,
            },
        )
        await dispatch(self.notifier, "notify_request_submitted", request)
        await dispatch(self.notifier, "notify_admins_of_new_request", request)
        return request

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    async def approve_request(
        self,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        year: Optional[int] = None,
    ) -> TimeOffRequest:
        """Approve a PENDING request and deduct its cached working days.

        ``InsufficientBalanceError`` rolls the whole approval back and the
        request stays PENDING.
        """
        request = await self.get_request(request_id)
        _require_pending(request)
        year = year or request.start_date.year

        async with self.store.balance_lock(request.user_id, year, request.leave_type):
            async with self.store.transaction() as db:
                request = await find_request_by_id(db, request_id, for_update=True)
                if request is None:
                    raise NotFoundException("TimeOffRequest", request_id)
                _require_pending(request)

                previous_status = request.status
                change = await self.ledger.apply_change(
                    db,
                    request.user_id,
                    year,
                    request.leave_type,
                    Decimal(request.working_days),
                    f"Approved time off request {request.id}",
                )
                request.status = RequestStatus.APPROVED
                request.balance_year = year
                request.reviewed_by = approver_id
                request.reviewed_at = datetime.now(timezone.utc)
                await db.flush()

        await self.audit.log(
            approver_id,
            AuditAction.UPDATE,
            AuditEntity.REQUEST,
            request.id,
            {
                "previousStatus": previous_status.value,
                "newStatus": RequestStatus.APPROVED.value,
                "approverId": str(approver_id),
            },
        )
        await self.ledger.record(change)
        await dispatch(self.notifier, "notify_request_approved", request)
        return request

    async def reject_request(
        self,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> TimeOffRequest:
        """Reject a PENDING request; the balance is never touched."""
        request = await self.get_request(request_id)
        _require_pending(request)

        async with self.store.transaction() as db:
            request = await find_request_by_id(db, request_id, for_update=True)
            if request is None:
                raise NotFoundException("TimeOffRequest", request_id)
            _require_pending(request)

            previous_status = request.status
            request.status = RequestStatus.REJECTED
            request.reviewed_by = approver_id
            request.reviewed_at = datetime.now(timezone.utc)
            if reason:
                request.reason = reason
            await db.flush()

        await self.audit.log(
            approver_id,
            AuditAction.UPDATE,
            AuditEntity.REQUEST,
            request.id,
            {
                "previousStatus": previous_status.value,
                "newStatus": RequestStatus.REJECTED.value,
                "approverId": str(approver_id),
                "reason": reason,
            },
        )
        await dispatch(self.notifier, "notify_request_rejected", request)
        return request

    # ─────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────

    async def delete_request(
        self,
        request_id: uuid.UUID,
        actor: Actor,
        year: Optional[int] = None,
    ) -> TimeOffRequest:
        """Delete a request in any state; APPROVED days go back to the balance.

        Returns the deleted row as it was just before removal.
        """
        request = await self.get_request(request_id)
        if not actor.can_act_for(request.user_id):
            raise ValidationError(
                ErrorCode.NOT_AUTHORIZED,
                "You are not authorized to delete this time off request.",
            )
        # Restore into the year the approval charged
        year = request.balance_year or year or request.start_date.year

        change = None
        async with self.store.balance_lock(request.user_id, year, request.leave_type):
            async with self.store.transaction() as db:
                request = await find_request_by_id(db, request_id, for_update=True)
                if request is None:
                    raise NotFoundException("TimeOffRequest", request_id)

                if request.status == RequestStatus.APPROVED:
                    change = await self.ledger.apply_change(
                        db,
                        request.user_id,
                        year,
                        request.leave_type,
                        -Decimal(request.working_days),
                        f"Deleted time off request {request.id}",
                    )
                await db.delete(request)
                await db.flush()

        await self.audit.log(
            actor.user_id,
            AuditAction.DELETE,
            AuditEntity.REQUEST,
            request.id,
            {
                "type": request.leave_type.value,
                "startDate": request.start_date.isoformat(),
                "endDate": request.end_date.isoformat(),
                "workingDays": request.working_days,
                "status": request.status.value,
            },
        )
        if change is not None:
            await self.ledger.record(change)
        return request

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    async def get_request(self, request_id: uuid.UUID) -> TimeOffRequest:
        async with self.store.transaction() as db:
            request = await find_request_by_id(db, request_id)
        if request is None:
            raise NotFoundException("TimeOffRequest", request_id)
        return request

    async def list_requests(
        self,
        pagination: PaginationParams,
        *,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[RequestStatus] = None,
        leave_type: Optional[LeaveType] = None,
        year: Optional[int] = None,
    ) -> PaginatedResponse[TimeOffRequestOut]:
        """Requests newest first, filtered by owner, status, type and start year."""
        query = select(TimeOffRequest)
        if user_id is not None:
            query = query.where(TimeOffRequest.user_id == user_id)
        if status is not None:
            query = query.where(TimeOffRequest.status == status)
        if leave_type is not None:
            query = query.where(TimeOffRequest.leave_type == leave_type)
        if year is not None:
            query = query.where(
                TimeOffRequest.start_date >= date(year, 1, 1),
                TimeOffRequest.start_date <= date(year, 12, 31),
            )
        if not pagination.sort:
            query = query.order_by(TimeOffRequest.start_date.desc(), TimeOffRequest.created_at.desc())

        async with self.store.transaction() as db:
            page = await paginate(db, query, pagination, model=TimeOffRequest)
        return PaginatedResponse[TimeOffRequestOut](
            data=[TimeOffRequestOut.model_validate(r) for r in page.data],
            meta=page.meta,
        )

    async def who_is_off(self, day: DateLike) -> Sequence[TimeOffRequest]:
        """Approved requests whose range covers *day*."""
        target = to_calendar_date(day)
        async with self.store.transaction() as db:
            result = await db.execute(
                select(TimeOffRequest)
                .where(
                    TimeOffRequest.status == RequestStatus.APPROVED,
                    TimeOffRequest.start_date <= target,
                    TimeOffRequest.end_date >= target,
                )
                .order_by(TimeOffRequest.start_date)
            )
            return result.scalars().all()
