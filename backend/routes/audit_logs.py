"""
Routes for the audit trail (admin only)
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from models import AuditLogPage
from routes.auth import require_admin
from routes.deps import get_db
from services.audit_logger import get_audit_logs

router = APIRouter(tags=["Audit"])


@router.get("/audit-logs", response_model=AuditLogPage)
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    entity_type: Optional[str] = None,
    action: Optional[str] = None,
    entity_id: Optional[str] = None,
    user: dict = Depends(require_admin),
    db=Depends(get_db)
):
    return await get_audit_logs(
        db,
        page=page,
        limit=limit,
        entity_type=entity_type,
        action=action,
        entity_id=entity_id
    )
