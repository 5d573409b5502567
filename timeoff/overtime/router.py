"""Overtime router — submit during the month-end window, review, rollup."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from timeoff.auth.dependencies import get_current_actor, require_role
from timeoff.auth.schemas import Actor
from timeoff.common.constants import RequestStatus, UserRole
from timeoff.common.exceptions import ForbiddenException
from timeoff.dependencies import get_overtime_service
from timeoff.overtime.schemas import (
    OvertimeApproveRequest,
    OvertimeRequestCreate,
    OvertimeRequestOut,
    OvertimeRollup,
)
from timeoff.overtime.service import OvertimeService

router = APIRouter(prefix="", tags=["overtime"])


@router.post("", response_model=OvertimeRequestOut, status_code=201)
async def submit_overtime(
    body: OvertimeRequestCreate,
    actor: Actor = Depends(get_current_actor),
    service: OvertimeService = Depends(get_overtime_service),
):
    return await service.create_overtime_request(actor.user_id, body.hours, body.notes)


@router.get("", response_model=list[OvertimeRequestOut])
async def list_overtime(
    user_id: Optional[uuid.UUID] = Query(None),
    status: Optional[RequestStatus] = Query(None),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    actor: Actor = Depends(get_current_actor),
    service: OvertimeService = Depends(get_overtime_service),
):
    """Own overtime; admins may filter by any user or list all."""
    if not actor.is_admin:
        if user_id is not None and user_id != actor.user_id:
            raise ForbiddenException("You can only view your own overtime.")
        user_id = actor.user_id
    return await service.list_overtime_requests(user_id=user_id, status=status, year=year)


@router.get("/rollup", response_model=list[OvertimeRollup])
async def overtime_rollup(
    year: int = Query(..., ge=2000, le=2100),
    user_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    service: OvertimeService = Depends(get_overtime_service),
):
    return await service.overtime_rollup(year, user_id)


@router.put("/{request_id}/approve", response_model=OvertimeRequestOut)
async def approve_overtime(
    request_id: uuid.UUID,
    body: OvertimeApproveRequest = OvertimeApproveRequest(),
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    service: OvertimeService = Depends(get_overtime_service),
):
    """Approve and credit the hours as vacation days."""
    return await service.approve_overtime(request_id, actor.user_id, body.year)


@router.put("/{request_id}/reject", response_model=OvertimeRequestOut)
async def reject_overtime(
    request_id: uuid.UUID,
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    service: OvertimeService = Depends(get_overtime_service),
):
    return await service.reject_overtime(request_id, actor.user_id)
