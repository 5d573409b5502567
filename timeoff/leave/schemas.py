"""Time-off request Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from timeoff.common.constants import ErrorCode, LeaveType, RequestStatus


# ═════════════════════════════════════════════════════════════════════
# Validation results
# ═════════════════════════════════════════════════════════════════════


class ValidationIssue(BaseModel):
    code: ErrorCode
    message: str
    field: Optional[str] = None


class ValidationResult(BaseModel):
    """Every rule violated by a prospective request, in check order."""

    errors: list[ValidationIssue] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.errors


# ═════════════════════════════════════════════════════════════════════
# Time-off requests
# ═════════════════════════════════════════════════════════════════════


class TimeOffRequestCreate(BaseModel):
    """Body for submitting a request. Admins may set ``user_id``."""

    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=1000)
    user_id: Optional[uuid.UUID] = None


class TimeOffApproveRequest(BaseModel):
    year: Optional[int] = Field(None, ge=2000, le=2100)


class TimeOffRejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class TimeOffRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    working_days: int
    status: RequestStatus
    reason: Optional[str] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    balance_year: Optional[int] = None
    created_at: datetime
    updated_at: datetime
