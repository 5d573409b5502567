"""Shared column types and timestamp mixin for ORM models.

The same models run on PostgreSQL (native UUID / JSONB) and on the
embedded SQLite store, so only portable types are used here.
"""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")

# Day counts are fractional (overtime credit yields e.g. 2.5)
DAYS = sa.Numeric(12, 6)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Add ``created_at`` / ``updated_at`` to any model via::

        class TimeOffRequest(Base, TimestampMixin):
            ...

    Values are set client-side so they are readable right after a flush
    without another round trip.
    """

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
