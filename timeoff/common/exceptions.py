"""Domain errors and their RFC 7807 Problem Detail rendering."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from timeoff.common.constants import ErrorCode, LeaveType

BASE_ERROR_URI = "https://timeoff.local/errors"


def format_days(value: Decimal) -> str:
    """Render a day count without trailing zeros (``5.000000`` → ``5``)."""
    return format(Decimal(value).normalize(), "f")


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Error raised by the domain layer; rendered as an RFC 7807 body with a ``code``."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
        code: str = ErrorCode.VALIDATION_ERROR.value,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        self.code = code
        super().__init__(detail)

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(AppException):
    """422 — business-rule violation carrying a stable rule code."""

    def __init__(
        self,
        code: str | ErrorCode,
        message: str,
        *,
        field: Optional[str] = None,
        errors: Optional[dict[str, list[str]]] = None,
    ) -> None:
        code_value = code.value if isinstance(code, ErrorCode) else code
        self.field = field
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail=message,
            errors=errors or {field or code_value: [message]},
            code=code_value,
        )


class InsufficientBalanceError(AppException):
    """422 — not enough remaining days for the requested deduction."""

    def __init__(
        self,
        leave_type: LeaveType,
        required: Decimal,
        available: Decimal,
    ) -> None:
        self.leave_type = LeaveType(leave_type)
        self.required = Decimal(required)
        self.available = Decimal(available)
        detail = (
            f"Insufficient {self.leave_type.value} days. "
            f"Required: {format_days(self.required)}, "
            f"Available: {format_days(self.available)}"
        )
        super().__init__(
            status_code=422,
            error_type="insufficient-balance",
            title="Insufficient Balance",
            detail=detail,
            errors={
                "type": [self.leave_type.value],
                "required": [format_days(self.required)],
                "available": [format_days(self.available)],
            },
            code=ErrorCode.INSUFFICIENT_BALANCE.value,
        )


class NotFoundException(AppException):
    """404 — a request, user or balance that does not exist."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
            code=ErrorCode.NOT_FOUND.value,
        )


class DuplicateRequestError(AppException):
    """409 — an active request with identical user, dates and type exists."""

    def __init__(self, existing_id: Any) -> None:
        self.existing_id = existing_id
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Duplicate Request",
            detail=(
                "A pending or approved request for the same dates and type "
                f"already exists ('{existing_id}'). Check your existing requests."
            ),
            errors={"request": [str(existing_id)]},
            code=ErrorCode.DUPLICATE_REQUEST.value,
        )


class ForbiddenException(AppException):
    """403 — caller lacks the role or ownership the action needs."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
            code=ErrorCode.FORBIDDEN.value,
        )


class SubmissionWindowError(AppException):
    """403 — overtime submitted outside the end-of-month window."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=403,
            error_type="submission-window-closed",
            title="Submission Window Closed",
            detail=detail,
            code=ErrorCode.SUBMISSION_WINDOW_CLOSED.value,
        )


class InvalidDateError(AppException):
    """422 — a value that cannot be read as a calendar date."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(
            status_code=422,
            error_type="invalid-date",
            title="Invalid Date",
            detail=f"'{value}' is not a valid date.",
            code=ErrorCode.INVALID_DATE.value,
        )


class DatabaseError(AppException):
    """500 — storage failure. Details stay in the server log."""

    def __init__(self) -> None:
        super().__init__(
            status_code=500,
            error_type="database-error",
            title="Database Error",
            detail="The operation could not be completed. Please try again later.",
            code=ErrorCode.DATABASE_ERROR.value,
        )


# ── Problem Detail responses ────────────────────────────────────────

def _problem_response(
    request: Request,
    *,
    status_code: int,
    error_type: str,
    title: str,
    detail: str,
    code: str,
    errors: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{error_type}",
        "title": title,
        "status": status_code,
        "code": code,
        "detail": detail,
        "instance": request.url.path,
    }
    if errors:
        body["errors"] = errors
    return JSONResponse(
        status_code=status_code,
        content=body,
        media_type="application/problem+json",
    )


async def _on_app_exception(request: Request, exc: AppException) -> JSONResponse:
    return _problem_response(
        request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        title=exc.title,
        detail=exc.detail,
        code=exc.code,
        errors=exc.errors,
    )


def _field_name(loc: tuple) -> str:
    # Drop the leading "body"/"query" segment FastAPI puts on every location
    parts = [str(p) for p in loc[1:]] or [str(p) for p in loc[:1]]
    return ".".join(parts) or "unknown"


async def _on_request_validation(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    by_field: dict[str, list[str]] = {}
    for err in exc.errors():
        by_field.setdefault(_field_name(tuple(err.get("loc", ()))), []).append(
            err.get("msg", "Invalid value")
        )
    return _problem_response(
        request,
        status_code=422,
        error_type="validation-error",
        title="Validation Error",
        detail="Request validation failed.",
        code=ErrorCode.VALIDATION_ERROR.value,
        errors=by_field,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Route AppException and request-body validation failures to Problem Details."""
    app.add_exception_handler(AppException, _on_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _on_request_validation)  # type: ignore[arg-type]
