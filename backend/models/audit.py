"""
Sales CRM - Audit log model (append-only)
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, Enum):
    LEAD_CREATED = "LEAD_CREATED"
    LEAD_UPDATED = "LEAD_UPDATED"
    LEAD_SOLD = "LEAD_SOLD"
    LEAD_STATUS_CHANGED = "LEAD_STATUS_CHANGED"
    LEAD_DELETED = "LEAD_DELETED"
    TARGET_CREATED = "TARGET_CREATED"
    TARGET_UPDATED = "TARGET_UPDATED"
    TARGET_DELETED = "TARGET_DELETED"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class AuditEntityType(str, Enum):
    LEAD = "Lead"
    TARGET = "Target"
    USER = "User"
    TEAM = "Team"
    SYSTEM = "System"


class AuditLogEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: str
    user_id: str
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditLogPage(BaseModel):
    audit_logs: List[AuditLogEntry]
    pagination: Dict[str, int]
