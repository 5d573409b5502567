"""Admin router — audit log browsing. ADMIN role required."""

import uuid
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from timeoff.auth.dependencies import require_role
from timeoff.auth.schemas import Actor
from timeoff.common.audit import AuditTrail
from timeoff.common.constants import AuditAction, AuditEntity, UserRole
from timeoff.dependencies import get_audit_trail

router = APIRouter(prefix="", tags=["admin"])


class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    action: AuditAction
    entity_type: AuditEntity
    entity_id: str
    details: Optional[dict[str, Any]] = None
    created_at: datetime


@router.get("/audit-logs", response_model=list[AuditLogOut])
async def audit_logs(
    user_id: Optional[uuid.UUID] = Query(None),
    entity_type: Optional[AuditEntity] = Query(None),
    entity_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(require_role(UserRole.ADMIN)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """Audit entries, newest first."""
    return await audit.get_logs(
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
