"""
Sales CRM - Models package

from models import LeadStatus, TargetCreate, AuditAction, ...
"""

from .lead import (
    LeadStatus,
    VALID_LEAD_STATUSES,
    LeadDocument,
    LeadCreate,
    LeadUpdate,
)

from .target import (
    AUTO_CREATED_DESCRIPTION,
    TargetDocument,
    TargetCreate,
    TargetUpdate,
    MainTargetSummary,
)

from .audit import (
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    AuditLogPage,
)

__all__ = [
    # Lead
    "LeadStatus",
    "VALID_LEAD_STATUSES",
    "LeadDocument",
    "LeadCreate",
    "LeadUpdate",
    # Target
    "AUTO_CREATED_DESCRIPTION",
    "TargetDocument",
    "TargetCreate",
    "TargetUpdate",
    "MainTargetSummary",
    # Audit
    "AuditAction",
    "AuditEntityType",
    "AuditLogEntry",
    "AuditLogPage",
]
