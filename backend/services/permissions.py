"""
Sales CRM - Permission System
Role presets (admin / manager / agent) + FastAPI dependencies.
"""

import logging
from typing import Dict, List
from fastapi import Depends, HTTPException

logger = logging.getLogger("permissions")

# ════════════════════════════════════════════════════════════════════════
# ROLE PRESETS  ("<resource>.<action>")
# ════════════════════════════════════════════════════════════════════════

ROLE_PRESETS: Dict[str, List[str]] = {
    "admin": [
        "leads.create", "leads.read", "leads.update", "leads.delete", "leads.assign",
        "targets.create", "targets.read", "targets.update", "targets.delete",
        "users.create", "users.read", "users.update", "users.delete",
        "emails.send",
        "reports.read",
        "settings.read", "settings.update",
        "audit_logs.read",
    ],

    "manager": [
        "leads.create", "leads.read", "leads.update", "leads.assign",
        "targets.create", "targets.read", "targets.update",
        "users.create", "users.read", "users.update", "users.delete",  # agents only
        "emails.send",
        "reports.read",
    ],

    # Agents only act on their own leads (see can_edit_lead)
    "agent": [
        "leads.create", "leads.read", "leads.update",
        "targets.read",
        "emails.send",
    ],
}

VALID_ROLES = list(ROLE_PRESETS.keys())


# ════════════════════════════════════════════════════════════════════════
# PERMISSION CHECK HELPERS
# ════════════════════════════════════════════════════════════════════════

def user_has_permission(user: dict, key: str) -> bool:
    """Check if user's role grants a permission key."""
    return key in ROLE_PRESETS.get(user.get("role"), [])


def can_edit_lead(user: dict, lead: dict) -> bool:
    """Agents may only touch leads assigned to them."""
    if user.get("role") != "agent":
        return True
    assigned_to = lead.get("assigned_to")
    return assigned_to is not None and str(assigned_to) == str(user.get("id"))


# ════════════════════════════════════════════════════════════════════════
# FASTAPI DEPENDENCIES
# ════════════════════════════════════════════════════════════════════════

def require_permission(permission_key: str):
    """
    FastAPI dependency factory.
    Usage: user: dict = Depends(require_permission("targets.read"))
    """
    from routes.auth import get_current_user

    async def _check(user: dict = Depends(get_current_user)):
        if not user_has_permission(user, permission_key):
            logger.warning(
                f"[PERMISSION_DENIED] user={user.get('email')} "
                f"key={permission_key} role={user.get('role')}"
            )
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _check
