"""Overtime Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from timeoff.common.constants import RequestStatus


class OvertimeRequestCreate(BaseModel):
    hours: Decimal = Field(..., gt=0, le=744)
    notes: Optional[str] = Field(None, max_length=1000)


class OvertimeApproveRequest(BaseModel):
    year: Optional[int] = Field(None, ge=2000, le=2100)


class OvertimeRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    hours: Decimal
    request_date: date
    month: int
    year: int
    status: RequestStatus
    notes: Optional[str] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime


class OvertimeRollup(BaseModel):
    """Approved overtime per user for a year, with its vacation-day value."""

    user_id: uuid.UUID
    year: int
    hours: Decimal
    days: Decimal
