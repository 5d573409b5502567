"""Enums and constants for the time-off engine — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


# ── Time off ────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    VACATION = "VACATION"
    SICK = "SICK"
    PAID_LEAVE = "PAID_LEAVE"
    PERSONAL = "PERSONAL"


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class BalanceSchema(str, enum.Enum):
    per_type = "per_type"
    aggregated = "aggregated"


# ── Audit ───────────────────────────────────────────────────────────

class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditEntity(str, enum.Enum):
    REQUEST = "REQUEST"
    BALANCE = "BALANCE"
    OVERTIME = "OVERTIME"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    info = "info"
    action_required = "action_required"
    approval = "approval"
    alert = "alert"


# ── Error codes ─────────────────────────────────────────────────────

class ErrorCode(str, enum.Enum):
    """Stable machine-readable codes carried by every AppException."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_RANGE = "INVALID_RANGE"
    BLACKOUT_DATE = "BLACKOUT_DATE"
    MAX_CONSECUTIVE_DAYS = "MAX_CONSECUTIVE_DAYS"
    INSUFFICIENT_NOTICE = "INSUFFICIENT_NOTICE"
    OVERLAPPING_REQUEST = "OVERLAPPING_REQUEST"
    REQUEST_LIMIT_EXCEEDED = "REQUEST_LIMIT_EXCEEDED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    NOT_PENDING = "NOT_PENDING"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    INVALID_HOURS = "INVALID_HOURS"
    INVALID_DATE = "INVALID_DATE"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
    SUBMISSION_WINDOW_CLOSED = "SUBMISSION_WINDOW_CLOSED"
    DATABASE_ERROR = "DATABASE_ERROR"


# Each role implicitly includes the roles below it
ROLE_HIERARCHY: dict[UserRole, set[UserRole]] = {
    UserRole.ADMIN: {UserRole.ADMIN, UserRole.MANAGER, UserRole.EMPLOYEE},
    UserRole.MANAGER: {UserRole.MANAGER, UserRole.EMPLOYEE},
    UserRole.EMPLOYEE: {UserRole.EMPLOYEE},
}
