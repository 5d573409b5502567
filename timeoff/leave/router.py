"""Time-off request router — submit, list, approve/reject, delete.

All endpoints require authentication. Approval and rejection are ADMIN-only.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from timeoff.auth.dependencies import get_current_actor, require_role
from timeoff.auth.schemas import Actor
from timeoff.common.constants import LeaveType, RequestStatus, UserRole
from timeoff.common.exceptions import ForbiddenException
from timeoff.common.pagination import PaginatedResponse, PaginationParams
from timeoff.common.rate_limit import SUBMIT_LIMIT, limiter
from timeoff.dependencies import get_request_service
from timeoff.leave.schemas import (
    TimeOffApproveRequest,
    TimeOffRejectRequest,
    TimeOffRequestCreate,
    TimeOffRequestOut,
    ValidationResult,
)
from timeoff.leave.service import TimeOffRequestService

router = APIRouter(prefix="", tags=["requests"])


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=TimeOffRequestOut, status_code=201)
@limiter.limit(SUBMIT_LIMIT)
async def create_request(
    request: Request,
    body: TimeOffRequestCreate,
    actor: Actor = Depends(get_current_actor),
    service: TimeOffRequestService = Depends(get_request_service),
):
    """Submit a request. Admins may submit on behalf of another user."""
    return await service.create_request(
        body.user_id or actor.user_id,
        body.leave_type,
        body.start_date,
        body.end_date,
        body.reason,
        actor=actor,
    )


# ── POST /validate ──────────────────────────────────────────────────

@router.post("/validate", response_model=ValidationResult)
async def validate_request(
    body: TimeOffRequestCreate,
    actor: Actor = Depends(get_current_actor),
    service: TimeOffRequestService = Depends(get_request_service),
):
    """Run every submission rule and report all violations."""
    user_id = body.user_id or actor.user_id
    if not actor.can_act_for(user_id):
        raise ForbiddenException()
    return await service.validate_request(
        user_id, body.leave_type, body.start_date, body.end_date,
    )


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=PaginatedResponse[TimeOffRequestOut])
async def list_requests(
    user_id: Optional[uuid.UUID] = Query(None),
    status: Optional[RequestStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_current_actor),
    service: TimeOffRequestService = Depends(get_request_service),
):
    """Own requests; admins may list anyone's (omit ``user_id`` for all)."""
    if not actor.is_admin:
        if user_id is not None and user_id != actor.user_id:
            raise ForbiddenException("You can only view your own requests.")
        user_id = actor.user_id
    return await service.list_requests(
        pagination, user_id=user_id, status=status, leave_type=leave_type, year=year,
    )


# ── GET /who-is-off ─────────────────────────────────────────────────

@router.get("/who-is-off", response_model=list[TimeOffRequestOut])
async def who_is_off(
    day: date = Query(...),
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    service: TimeOffRequestService = Depends(get_request_service),
):
    """Approved requests covering ``day``."""
    return await service.who_is_off(day)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{request_id}", response_model=TimeOffRequestOut)
async def get_request(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    service: TimeOffRequestService = Depends(get_request_service),
):
    time_off = await service.get_request(request_id)
    if not actor.can_act_for(time_off.user_id):
        raise ForbiddenException("You can only view your own requests.")
    return time_off


# ── PUT /{id}/approve ───────────────────────────────────────────────

@router.put("/{request_id}/approve", response_model=TimeOffRequestOut)
async def approve_request(
    request_id: uuid.UUID,
    body: TimeOffApproveRequest = TimeOffApproveRequest(),
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    service: TimeOffRequestService = Depends(get_request_service),
):
    """Approve a pending request. Deducts its working days from the balance."""
    return await service.approve_request(request_id, actor.user_id, body.year)


# ── PUT /{id}/reject ────────────────────────────────────────────────

@router.put("/{request_id}/reject", response_model=TimeOffRequestOut)
async def reject_request(
    request_id: uuid.UUID,
    body: TimeOffRejectRequest = TimeOffRejectRequest(),
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    service: TimeOffRequestService = Depends(get_request_service),
):
    return await service.reject_request(request_id, actor.user_id, body.reason)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{request_id}", status_code=204)
async def delete_request(
    request_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    actor: Actor = Depends(get_current_actor),
    service: TimeOffRequestService = Depends(get_request_service),
):
    """Delete a request; an approved one gives its days back."""
    await service.delete_request(request_id, actor, year)
    return Response(status_code=204)
