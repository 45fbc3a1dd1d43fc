"""
Sales CRM - Audit Logger

Append-only audit trail for workflow events.
Writes are best-effort: a failed write is logged and never fails the caller.
"""

import logging
import math
import uuid
from typing import Any, Dict, Optional, Union

from config import now_iso
from models.audit import AuditAction, AuditEntityType

logger = logging.getLogger("audit_logger")


async def record_audit(
    db,
    action: Union[AuditAction, str],
    entity_id: str,
    user_id: str,
    details: Optional[Dict[str, Any]] = None,
    entity_type: Union[AuditEntityType, str] = AuditEntityType.LEAD,
    session=None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Write a single entry to the audit_logs collection.

    Args:
        action: AuditAction member (or its value), e.g. LEAD_SOLD
        entity_type: Lead | Target | User | Team | System
        entity_id: ID of the primary entity
        user_id: ID of the user performing the action
        details: free-form dict (targets touched, amounts, statuses)
        session: active transaction session, if any

    Returns:
        The stored entry, or None when the write failed.
    """
    # Unknown actions raise here instead of being stored
    action = AuditAction(action)
    entity_type = AuditEntityType(entity_type)

    entry = {
        "id": str(uuid.uuid4()),
        "action": action.value,
        "entity_type": entity_type.value,
        "entity_id": str(entity_id),
        "user_id": str(user_id),
        "details": details or {},
        "timestamp": now_iso(),
        "ip_address": ip_address,
        "user_agent": user_agent
    }

    try:
        await db.audit_logs.insert_one(dict(entry), session=session)
    except Exception:
        logger.exception(f"[AUDIT] Failed to write {action.value} for {entity_type.value} {entity_id}")
        return None

    logger.info(f"[AUDIT] {action.value} {entity_type.value} {entity_id} by {user_id}")
    return entry


async def get_audit_logs(
    db,
    page: int = 1,
    limit: int = 50,
    entity_type: str = None,
    action: str = None,
    entity_id: str = None
):
    """
    Audit entries, newest first, with optional filters.
    """
    query = {}

    if entity_type:
        query["entity_type"] = entity_type
    if action:
        query["action"] = action
    if entity_id:
        query["entity_id"] = entity_id

    page = max(page, 1)
    limit = max(limit, 1)
    skip = (page - 1) * limit

    logs = await db.audit_logs.find(query, {"_id": 0}) \
        .sort("timestamp", -1) \
        .skip(skip) \
        .limit(limit) \
        .to_list(limit)

    total = await db.audit_logs.count_documents(query)

    return {
        "audit_logs": logs,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit)
        }
    }
