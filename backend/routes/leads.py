"""
Routes for Leads
"""

from typing import List
from fastapi import APIRouter, HTTPException, Depends

from models import LeadCreate, LeadDocument, LeadUpdate
from routes.auth import get_current_user
from routes.deps import get_db, get_client
from services.permissions import user_has_permission, can_edit_lead, require_permission
from services.lead_workflow import (
    process_lead_status_change,
    create_lead,
    delete_lead,
    DuplicateMobileNumberError,
    TransactionError,
    WorkflowResult,
)

router = APIRouter(tags=["Leads"])


async def _load_editable_lead(db, lead_id: str, user: dict, permission: str) -> dict:
    if not user_has_permission(user, permission):
        raise HTTPException(status_code=403, detail="Forbidden")

    lead = await db.leads.find_one({"id": lead_id}, {"_id": 0})
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")

    if not can_edit_lead(user, lead):
        raise HTTPException(status_code=403, detail="Forbidden")
    return lead


async def _visible_leads_query(db, user: dict) -> dict:
    """Agents see their own leads, managers their agents' and their own, admins all."""
    role = user.get("role")
    if role == "agent":
        return {"assigned_to": user["id"]}
    if role == "manager":
        team = await db.users.find(
            {"created_by": user["id"], "role": "agent"}, {"_id": 0, "id": 1}
        ).to_list(None)
        return {"assigned_to": {"$in": [m["id"] for m in team] + [user["id"]]}}
    return {}


def _validation_error(result: WorkflowResult) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"success": False, "message": result.errors[0], "errors": result.errors}
    )


def _transaction_error(error: TransactionError, message: str) -> HTTPException:
    return HTTPException(status_code=500, detail={"message": message, "error": str(error)})


@router.get("/leads", response_model=List[LeadDocument])
async def list_leads(user: dict = Depends(require_permission("leads.read")), db=Depends(get_db)):
    query = await _visible_leads_query(db, user)
    return await db.leads.find(query, {"_id": 0}).sort("created_at", -1).to_list(None)


@router.post("/leads", status_code=201)
async def post_lead(
    data: LeadCreate,
    user: dict = Depends(require_permission("leads.create")),
    db=Depends(get_db),
    client=Depends(get_client)
):
    """Create a lead. A lead created as "sold" is allocated to the targets."""
    try:
        result = await create_lead(client, db, data.model_dump(), user)
    except DuplicateMobileNumberError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransactionError as e:
        raise _transaction_error(e, "Failed to create lead")

    if not result.success:
        raise _validation_error(result)

    return {
        "success": True,
        "lead": result.lead,
        "target_updates": result.target_updates,
        "audit_log": result.audit_log
    }


@router.get("/leads/{lead_id}", response_model=LeadDocument)
async def get_lead(lead_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return await _load_editable_lead(db, lead_id, user, "leads.read")


@router.put("/leads/{lead_id}")
async def update_lead(
    lead_id: str,
    data: LeadUpdate,
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
    client=Depends(get_client)
):
    """
    Update a lead. Moving into or out of "sold" allocates or reverses
    its profit on the targets, atomically with the lead update.
    """
    existing_lead = await _load_editable_lead(db, lead_id, user, "leads.update")

    lead_data = data.model_dump(exclude_unset=True)

    try:
        result = await process_lead_status_change(
            client, db, lead_id, lead_data, existing_lead, user["id"]
        )
    except TransactionError as e:
        raise _transaction_error(e, "Failed to update lead and targets")

    if not result.success:
        raise _validation_error(result)

    return {
        "success": True,
        "lead": result.lead,
        "target_updates": result.target_updates,
        "audit_log": result.audit_log
    }


@router.delete("/leads/{lead_id}")
async def remove_lead(
    lead_id: str,
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
    client=Depends(get_client)
):
    """Delete a lead. A sold lead's profit is reversed from the targets."""
    lead = await _load_editable_lead(db, lead_id, user, "leads.delete")

    try:
        result = await delete_lead(client, db, lead, user["id"])
    except TransactionError as e:
        raise _transaction_error(e, "Failed to delete lead")

    return {
        "message": "Lead deleted successfully",
        "target_updates": result.target_updates,
        "audit_log": result.audit_log
    }
