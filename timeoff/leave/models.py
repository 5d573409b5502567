"""Time-off request ORM model."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from timeoff.common.constants import LeaveType, RequestStatus
from timeoff.common.models import TimestampMixin
from timeoff.database import Base


class TimeOffRequest(Base, TimestampMixin):
    __tablename__ = "time_off_requests"

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
    leave_type: Mapped[LeaveType] = mapped_column(
        sa.Enum(LeaveType, name="leave_type"), nullable=False,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    # Computed once at creation; approval and deletion reuse it unchanged
    working_days: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    status: Mapped[RequestStatus] = mapped_column(
        sa.Enum(RequestStatus, name="request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
    )
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        sa.Uuid, sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    # Balance year charged at approval; NULL means the start year
    balance_year: Mapped[Optional[int]] = mapped_column(sa.Integer)

    __table_args__ = (
        sa.Index("ix_time_off_requests_user_start", "user_id", "start_date"),
        sa.Index("ix_time_off_requests_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<TimeOffRequest {self.leave_type.value} {self.start_date}..{self.end_date}"
            f" {self.status.value}>"
        )
