"""Notifier interface, the in-app implementation, and request dispatchers."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timeoff.auth.models import User
from timeoff.common.constants import NotificationType, UserRole
from timeoff.notifications.models import Notification

if TYPE_CHECKING:
    from timeoff.leave.models import TimeOffRequest
    from timeoff.overtime.models import OvertimeRequest
    from timeoff.store import TransactionalStore

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Outbound messages about requests. Any call may fail on its own."""

    async def notify_request_submitted(self, request: TimeOffRequest) -> None: ...

    async def notify_admins_of_new_request(self, request: TimeOffRequest) -> None: ...

    async def notify_request_approved(self, request: TimeOffRequest) -> None: ...

    async def notify_request_rejected(self, request: TimeOffRequest) -> None: ...

    async def notify_overtime_submitted(self, overtime: OvertimeRequest) -> None: ...


# ── Core service ────────────────────────────────────────────────────


class NotificationService:
    """Async notification operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        type: NotificationType = NotificationType.info,
        title: str,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        """Create a new notification and flush to DB."""
        notification = Notification(
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def get_notifications(
        db: AsyncSession,
        recipient_id: uuid.UUID,
        *,
        unread_only: bool = False,
    ) -> Sequence[Notification]:
        """Notifications for one user, newest first."""
        query = (
            select(Notification)
            .where(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc())
        )
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def get_admin_ids(db: AsyncSession) -> list[uuid.UUID]:
        result = await db.execute(
            select(User.id).where(
                User.role == UserRole.ADMIN,
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())


# ── Helper dispatchers ──────────────────────────────────────────────


def _describe(request: TimeOffRequest) -> str:
    label = request.leave_type.value.replace("_", " ").lower()
    return (
        f"{label} from {request.start_date.isoformat()} to "
        f"{request.end_date.isoformat()} ({request.working_days} working days)"
    )


class InAppNotifier:
    """Default ``Notifier``: stores notifications in their own transaction."""

    def __init__(self, store: TransactionalStore) -> None:
        self.store = store

    async def notify_request_submitted(self, request: TimeOffRequest) -> None:
        async with self.store.transaction() as db:
            await NotificationService.create_notification(
                db,
                recipient_id=request.user_id,
                type=NotificationType.info,
                title="Time Off Request Submitted",
                message=f"Your request for {_describe(request)} is awaiting approval.",
                entity_type="time_off_request",
                entity_id=request.id,
            )

    async def notify_admins_of_new_request(self, request: TimeOffRequest) -> None:
        async with self.store.transaction() as db:
            for admin_id in await NotificationService.get_admin_ids(db):
                await NotificationService.create_notification(
                    db,
                    recipient_id=admin_id,
                    type=NotificationType.action_required,
                    title="Time Off Request Pending",
                    message=f"A new request for {_describe(request)} needs review.",
                    entity_type="time_off_request",
                    entity_id=request.id,
                )

    async def notify_request_approved(self, request: TimeOffRequest) -> None:
        async with self.store.transaction() as db:
            await NotificationService.create_notification(
                db,
                recipient_id=request.user_id,
                type=NotificationType.approval,
                title="Time Off Approved",
                message=f"Your request for {_describe(request)} has been approved.",
                entity_type="time_off_request",
                entity_id=request.id,
            )

    async def notify_request_rejected(self, request: TimeOffRequest) -> None:
        message = f"Your request for {_describe(request)} has been rejected."
        if request.reason:
            message += f" Reason: {request.reason}"
        async with self.store.transaction() as db:
            await NotificationService.create_notification(
                db,
                recipient_id=request.user_id,
                type=NotificationType.alert,
                title="Time Off Rejected",
                message=message,
                entity_type="time_off_request",
                entity_id=request.id,
            )

    async def notify_overtime_submitted(self, overtime: OvertimeRequest) -> None:
        async with self.store.transaction() as db:
            for admin_id in await NotificationService.get_admin_ids(db):
                await NotificationService.create_notification(
                    db,
                    recipient_id=admin_id,
                    type=NotificationType.action_required,
                    title="Overtime Pending",
                    message=(
                        f"{overtime.hours} overtime hours for "
                        f"{overtime.year}-{overtime.month:02d} need review."
                    ),
                    entity_type="overtime_request",
                    entity_id=overtime.id,
                )


async def dispatch(notifier: Optional[Notifier], method: str, *args) -> None:
    """Call ``notifier.<method>(*args)``; failures are logged, never raised."""
    if notifier is None:
        return
    try:
        await getattr(notifier, method)(*args)
    except Exception:
        logger.exception("Notifier %s failed", method)
