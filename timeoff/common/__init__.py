"""Common module — shared utilities for the time-off engine."""

from timeoff.common.constants import (
    AuditAction,
    AuditEntity,
    BalanceSchema,
    ErrorCode,
    LeaveType,
    NotificationType,
    RequestStatus,
    UserRole,
)
from timeoff.common.exceptions import (
    AppException,
    DatabaseError,
    DuplicateRequestError,
    ForbiddenException,
    InsufficientBalanceError,
    InvalidDateError,
    NotFoundException,
    SubmissionWindowError,
    ValidationError,
    register_exception_handlers,
)

__all__ = [
    # Constants / Enums
    "AuditAction",
    "AuditEntity",
    "BalanceSchema",
    "ErrorCode",
    "LeaveType",
    "NotificationType",
    "RequestStatus",
    "UserRole",
    # Exceptions
    "AppException",
    "DatabaseError",
    "DuplicateRequestError",
    "ForbiddenException",
    "InsufficientBalanceError",
    "InvalidDateError",
    "NotFoundException",
    "SubmissionWindowError",
    "ValidationError",
    "register_exception_handlers",
]
