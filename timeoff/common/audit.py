"""Audit log model and the best-effort audit trail service."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

import sqlalchemy as sa
from sqlalchemy import Index, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from timeoff.common.constants import AuditAction, AuditEntity
from timeoff.common.models import JSONType, utcnow
from timeoff.database import Base

if TYPE_CHECKING:
    from timeoff.store import TransactionalStore

logger = logging.getLogger(__name__)


# ── Append-only audit table ─────────────────────────────────────────

class AuditLog(Base):
    """Append-only record of every request, balance and overtime mutation."""

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    # Actor; not a foreign key so entries outlive the user
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(sa.Uuid, nullable=True)
    action: Mapped[AuditAction] = mapped_column(
        sa.Enum(AuditAction, name="audit_action"), nullable=False,
    )
    entity_type: Mapped[AuditEntity] = mapped_column(
        sa.Enum(AuditEntity, name="audit_entity"), nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("ix_audit_logs_user_id", "user_id"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_audit_logs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog {self.action.value} {self.entity_type.value}"
            f"/{self.entity_id} by {self.user_id}>"
        )


# ── Helper to create an entry ───────────────────────────────────────

async def create_audit_entry(
    session: AsyncSession,
    *,
    action: AuditAction,
    entity_type: AuditEntity,
    entity_id: Any,
    user_id: Optional[uuid.UUID] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Create and flush an audit entry inside the caller's transaction.

    Args:
        session: Async SQLAlchemy session.
        action: CREATE | UPDATE | DELETE.
        entity_type: REQUEST | BALANCE | OVERTIME.
        entity_id: Identifier of the affected entity (stored as text).
        user_id: UUID of the user performing the action.
        details: Free-form JSON payload describing the change.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=details,
    )
    session.add(entry)
    await session.flush()
    return entry


# ── Service ─────────────────────────────────────────────────────────

class AuditTrail:
    """Writes never raise; reads return newest entries first."""

    def __init__(self, store: TransactionalStore) -> None:
        self.store = store

    async def log(
        self,
        user_id: Optional[uuid.UUID],
        action: AuditAction,
        entity_type: AuditEntity,
        entity_id: Any,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Append one entry in its own short transaction.

        Called after the primary transaction has committed. Any failure is
        logged and discarded.
        """
        try:
            async with self.store.transaction() as session:
                await create_audit_entry(
                    session,
                    action=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    user_id=user_id,
                    details=details,
                )
        except Exception:
            logger.exception(
                "Failed to write audit entry %s %s/%s",
                AuditAction(action).value, AuditEntity(entity_type).value, entity_id,
            )

    async def get_logs(
        self,
        *,
        user_id: Optional[uuid.UUID] = None,
        entity_type: Optional[AuditEntity] = None,
        entity_id: Optional[Any] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 100,
    ) -> list[AuditLog]:
        query = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id)

        if user_id is not None:
            query = query.where(AuditLog.user_id == user_id)
        if entity_type is not None:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id is not None:
            query = query.where(AuditLog.entity_id == str(entity_id))
        if start_date is not None:
            query = query.where(AuditLog.created_at >= start_date)
        if end_date is not None:
            query = query.where(AuditLog.created_at <= end_date)

        async with self.store.transaction() as session:
            rows = (await session.execute(query.limit(limit))).scalars().all()
        return list(rows)
