"""
Routes for Targets
"""

from typing import List
from fastapi import APIRouter, HTTPException, Depends

from models import (
    AuditAction,
    AuditEntityType,
    TargetDocument,
    TargetCreate,
    TargetUpdate,
    MainTargetSummary,
)
from routes.auth import get_current_user, require_admin
from routes.deps import get_db
from services.audit_logger import record_audit
from services.integrity import check_data_integrity
from services.permissions import require_permission
from services.target_ledger import (
    list_targets,
    create_target,
    update_target,
    delete_target,
    get_main_target_summary,
    TargetNotFoundError,
    DuplicateTargetDateError,
)

router = APIRouter(prefix="/targets", tags=["Targets"])


@router.get("", response_model=List[TargetDocument])
async def get_targets(user: dict = Depends(require_permission("targets.read")), db=Depends(get_db)):
    """All targets, most recent date first."""
    return await list_targets(db)


@router.get("/main", response_model=MainTargetSummary)
async def get_main_target(user: dict = Depends(get_current_user), db=Depends(get_db)):
    """Totals over every target."""
    return await get_main_target_summary(db)


@router.get("/integrity")
async def get_integrity_report(user: dict = Depends(require_admin), db=Depends(get_db)):
    return await check_data_integrity(db)


@router.post("", status_code=201, response_model=TargetDocument)
async def post_target(
    data: TargetCreate,
    user: dict = Depends(require_permission("targets.create")),
    db=Depends(get_db)
):
    try:
        target = await create_target(db, data.model_dump(), user["id"])
    except DuplicateTargetDateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await record_audit(
        db, AuditAction.TARGET_CREATED, target["id"], user["id"],
        details={"date": target["date"], "amount": target["amount"]},
        entity_type=AuditEntityType.TARGET
    )
    return target


@router.put("/{target_id}", response_model=TargetDocument)
async def put_target(
    target_id: str,
    data: TargetUpdate,
    user: dict = Depends(require_permission("targets.update")),
    db=Depends(get_db)
):
    changes = data.model_dump(exclude_unset=True)
    try:
        target = await update_target(db, target_id, changes)
    except TargetNotFoundError:
        raise HTTPException(status_code=404, detail="Target not found")
    except DuplicateTargetDateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await record_audit(
        db, AuditAction.TARGET_UPDATED, target_id, user["id"],
        details={k: str(v) if k == "date" else v for k, v in changes.items()},
        entity_type=AuditEntityType.TARGET
    )
    return target


@router.delete("/{target_id}")
async def remove_target(
    target_id: str,
    user: dict = Depends(require_permission("targets.delete")),
    db=Depends(get_db)
):
    try:
        await delete_target(db, target_id)
    except TargetNotFoundError:
        raise HTTPException(status_code=404, detail="Target not found")

    await record_audit(
        db, AuditAction.TARGET_DELETED, target_id, user["id"],
        entity_type=AuditEntityType.TARGET
    )
    return {"message": "Target deleted successfully"}
