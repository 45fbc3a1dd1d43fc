"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Sales CRM - Lead Workflow                                                   ║
║                                                                              ║
║  Lead write + profit allocation in ONE transaction, audit after commit.      ║
║                                                                              ║
║  TRANSITIONS:                                                                ║
║  - not sold -> sold   (margin > 0)        : FIFO allocation + LEAD_SOLD      ║
║  - sold -> not sold   (stored margin > 0) : LIFO reversal + STATUS_CHANGED   ║
║  - anything else                          : lead update only                 ║
║                                                                              ║
║  Creating a sold lead allocates, deleting a sold lead reverses.              ║
║                                                                              ║
║  A failure inside the unit of work aborts it: neither the lead nor the       ║
║  targets keep partial changes. Audit writes are best-effort and run once     ║
║  the transaction has committed (a failed write inside a MongoDB              ║
║  transaction aborts it server-side).                                         ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from config import now_iso
from models.audit import AuditAction
from models.lead import LeadStatus
from services.audit_logger import record_audit
from services.profit import (
    InvalidPriceError,
    compute_lead_profit_margin,
    parse_price_input,
    validate_sold_lead,
)
from services.target_ledger import allocate_profit, reverse_profit

logger = logging.getLogger("lead_workflow")

PRICE_FIELDS = ("sale_price", "product_price")


class SoldLeadValidationError(Exception):
    """A lead cannot enter "sold" with these prices"""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class TransactionError(Exception):
    """The allocation/reversal unit of work failed and was rolled back"""
    pass


class DuplicateMobileNumberError(Exception):
    pass


class LeadTransition(str, Enum):
    SOLD = "sold"        # not sold -> sold
    UNSOLD = "unsold"    # sold -> not sold
    NONE = "none"


TRANSITION_AUDIT_ACTIONS = {
    LeadTransition.SOLD: AuditAction.LEAD_SOLD,
    LeadTransition.UNSOLD: AuditAction.LEAD_STATUS_CHANGED,
    LeadTransition.NONE: None,
}

assert set(TRANSITION_AUDIT_ACTIONS) == set(LeadTransition)

# (action, details) written once the transaction has committed
PendingAudit = Optional[Tuple[AuditAction, Dict[str, Any]]]


@dataclass
class WorkflowResult:
    success: bool
    lead: Optional[Dict[str, Any]] = None
    target_updates: Optional[Dict[str, Any]] = None
    audit_log: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _status_value(status) -> Optional[str]:
    if isinstance(status, LeadStatus):
        return status.value
    return status


def classify_transition(previous_status, new_status) -> LeadTransition:
    was_sold = _status_value(previous_status) == LeadStatus.SOLD.value
    is_now_sold = _status_value(new_status) == LeadStatus.SOLD.value

    if not was_sold and is_now_sold:
        return LeadTransition.SOLD
    if was_sold and not is_now_sold:
        return LeadTransition.UNSOLD
    return LeadTransition.NONE


def build_lead_update(existing_lead: Dict[str, Any], lead_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fields to $set on the lead: the incoming values plus the recomputed
    profit_margin. Raises InvalidPriceError on malformed or negative prices.
    """
    update_data = {k: v for k, v in lead_data.items() if v is not None}

    if "status" in update_data:
        update_data["status"] = _status_value(update_data["status"])
    if update_data.get("assigned_to") == "unassigned":
        update_data["assigned_to"] = None
    elif "assigned_to" in lead_data and lead_data["assigned_to"] is None:
        update_data["assigned_to"] = None
    for key in PRICE_FIELDS:
        if key in update_data:
            update_data[key] = parse_price_input(update_data[key])

    profit_margin = compute_lead_profit_margin({**existing_lead, **update_data})
    if profit_margin is not None:
        update_data["profit_margin"] = profit_margin

    update_data["updated_at"] = now_iso()
    return update_data


def build_new_lead(lead_data: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Document for a new lead. Unassigned leads created by an agent go to
    that agent. Raises InvalidPriceError on malformed or negative prices.
    """
    assigned_to = lead_data.get("assigned_to")
    if assigned_to == "unassigned":
        assigned_to = None
    elif not assigned_to and user.get("role") == "agent":
        assigned_to = user["id"]

    now = now_iso()
    lead = {
        "id": str(uuid.uuid4()),
        "customer_name": lead_data["customer_name"],
        "mobile_number": lead_data["mobile_number"],
        "email": lead_data.get("email") or "",
        "product_name": lead_data.get("product_name") or "",
        "product_price": parse_price_input(lead_data.get("product_price")),
        "sale_price": parse_price_input(lead_data.get("sale_price")),
        "source": lead_data.get("source") or "",
        "status": _status_value(lead_data.get("status")) or LeadStatus.NEW.value,
        "assigned_to": assigned_to,
        "created_by": user["id"],
        "created_at": now,
        "updated_at": now
    }
    lead["profit_margin"] = compute_lead_profit_margin(lead) or 0
    return lead


def _check_sold_lead(lead: Dict[str, Any]):
    if _status_value(lead.get("status")) == LeadStatus.SOLD.value:
        validation = validate_sold_lead(lead)
        if not validation.is_valid:
            raise SoldLeadValidationError(validation.errors)


async def _run_in_transaction(client, lead_id: str, work: Callable[[Any], Awaitable[Any]]):
    """Run `work(session)` in a transaction; any failure becomes TransactionError."""
    try:
        async with await client.start_session() as session:
            return await session.with_transaction(work)
    except Exception as e:
        logger.error(f"[WORKFLOW] Transaction failed for lead {lead_id}: {e}")
        raise TransactionError(str(e)) from e


async def _write_audit(db, result: WorkflowResult, pending: PendingAudit, lead_id: str, user_id: str):
    if pending is None:
        return
    action, details = pending
    result.audit_log = await record_audit(db, action, lead_id, user_id, details=details)


# ════════════════════════════════════════════════════════════════════════════
# STATUS CHANGE
# ════════════════════════════════════════════════════════════════════════════

async def _run_unit_of_work(
    db,
    session,
    lead_id: str,
    update_data: Dict[str, Any],
    existing_lead: Dict[str, Any],
    transition: LeadTransition,
    user_id: str
) -> Tuple[WorkflowResult, PendingAudit]:
    """Everything that must commit or abort together."""
    result = await db.leads.update_one({"id": lead_id}, {"$set": update_data}, session=session)
    if result.matched_count == 0:
        raise RuntimeError(f"Failed to update lead {lead_id}")

    lead = await db.leads.find_one({"id": lead_id}, {"_id": 0}, session=session)
    workflow_result = WorkflowResult(success=True, lead=lead)

    action = TRANSITION_AUDIT_ACTIONS[transition]
    profit_margin = update_data.get("profit_margin", existing_lead.get("profit_margin")) or 0
    previous_margin = existing_lead.get("profit_margin") or 0

    if transition is LeadTransition.SOLD and profit_margin > 0:
        target_updates = await allocate_profit(db, profit_margin, user_id, session=session)
        workflow_result.target_updates = target_updates
        return workflow_result, (action, {
            "customer_name": lead.get("customer_name"),
            "sale_price": lead.get("sale_price"),
            "product_price": lead.get("product_price"),
            "profit_margin": profit_margin,
            "target_updates": target_updates["updated_targets"]
        })

    if transition is LeadTransition.UNSOLD and previous_margin > 0:
        target_updates = await reverse_profit(db, previous_margin, user_id, session=session)
        workflow_result.target_updates = target_updates
        return workflow_result, (action, {
            "previous_status": LeadStatus.SOLD.value,
            "new_status": lead.get("status"),
            "profit_removed": previous_margin,
            "target_updates": target_updates["updated_targets"],
            "remaining_to_remove": target_updates["remaining_to_remove"]
        })

    return workflow_result, None


async def process_lead_status_change(
    client,
    db,
    lead_id: str,
    lead_data: Dict[str, Any],
    existing_lead: Dict[str, Any],
    user_id: str
) -> WorkflowResult:
    """
    Apply a lead update and run the profit workflow its status change calls for.

    Validation failures come back as WorkflowResult(success=False, errors=[...])
    with nothing written. Failures inside the transaction are re-raised as
    TransactionError after the rollback.
    """
    new_status = lead_data.get("status") or existing_lead.get("status")
    transition = classify_transition(existing_lead.get("status"), new_status)

    try:
        update_data = build_lead_update(existing_lead, lead_data)
        _check_sold_lead({**existing_lead, **update_data, "status": _status_value(new_status)})
    except SoldLeadValidationError as e:
        logger.info(f"[WORKFLOW] Lead {lead_id} rejected: {e.errors}")
        return WorkflowResult(success=False, errors=e.errors)
    except InvalidPriceError as e:
        logger.info(f"[WORKFLOW] Lead {lead_id} rejected: {e}")
        return WorkflowResult(success=False, errors=[str(e)])

    async def callback(session):
        return await _run_unit_of_work(
            db, session, lead_id, update_data, existing_lead, transition, user_id
        )

    result, pending_audit = await _run_in_transaction(client, lead_id, callback)
    await _write_audit(db, result, pending_audit, lead_id, user_id)

    logger.info(
        f"[WORKFLOW] Lead {lead_id} {existing_lead.get('status')} -> {_status_value(new_status)} "
        f"| transition={transition.value} | user={user_id}"
    )
    return result


# ════════════════════════════════════════════════════════════════════════════
# CREATE / DELETE
# ════════════════════════════════════════════════════════════════════════════

async def create_lead(client, db, lead_data: Dict[str, Any], user: Dict[str, Any]) -> WorkflowResult:
    """
    Insert a new lead. A lead created as "sold" goes through the same
    validation and FIFO allocation as a status change into "sold".

    Raises DuplicateMobileNumberError when the mobile number is taken.
    """
    try:
        lead = build_new_lead(lead_data, user)
        _check_sold_lead(lead)
    except SoldLeadValidationError as e:
        return WorkflowResult(success=False, errors=e.errors)
    except InvalidPriceError as e:
        return WorkflowResult(success=False, errors=[str(e)])

    if await db.leads.find_one({"mobile_number": lead["mobile_number"]}, {"_id": 0, "id": 1}):
        raise DuplicateMobileNumberError("Mobile number already exists")

    sold = lead["status"] == LeadStatus.SOLD.value and lead["profit_margin"] > 0

    async def callback(session):
        await db.leads.insert_one(dict(lead), session=session)
        if sold:
            return await allocate_profit(db, lead["profit_margin"], user["id"], session=session)
        return None

    try:
        target_updates = await _run_in_transaction(client, lead["id"], callback)
    except TransactionError as e:
        if isinstance(e.__cause__, DuplicateKeyError):
            raise DuplicateMobileNumberError("Mobile number already exists") from e
        raise

    result = WorkflowResult(success=True, lead=lead, target_updates=target_updates)
    await _write_audit(db, result, (AuditAction.LEAD_CREATED, {
        "customer_name": lead["customer_name"],
        "status": lead["status"],
        "profit_margin": lead["profit_margin"]
    }), lead["id"], user["id"])
    if sold:
        await _write_audit(db, result, (AuditAction.LEAD_SOLD, {
            "customer_name": lead["customer_name"],
            "sale_price": lead["sale_price"],
            "product_price": lead["product_price"],
            "profit_margin": lead["profit_margin"],
            "target_updates": target_updates["updated_targets"]
        }), lead["id"], user["id"])

    logger.info(f"[WORKFLOW] Lead {lead['id']} created ({lead['status']}) | user={user['id']}")
    return result


async def delete_lead(client, db, lead: Dict[str, Any], user_id: str) -> WorkflowResult:
    """Delete a lead. A sold lead's stored margin is reversed from the targets."""
    lead_id = lead["id"]
    profit_margin = lead.get("profit_margin") or 0
    sold = _status_value(lead.get("status")) == LeadStatus.SOLD.value and profit_margin > 0

    async def callback(session):
        result = await db.leads.delete_one({"id": lead_id}, session=session)
        if result.deleted_count == 0:
            raise RuntimeError(f"Failed to delete lead {lead_id}")
        if sold:
            return await reverse_profit(db, profit_margin, user_id, session=session)
        return None

    target_updates = await _run_in_transaction(client, lead_id, callback)

    details = {"customer_name": lead.get("customer_name"), "status": lead.get("status")}
    if target_updates is not None:
        details["profit_removed"] = profit_margin
        details["target_updates"] = target_updates["updated_targets"]
        details["remaining_to_remove"] = target_updates["remaining_to_remove"]

    result = WorkflowResult(success=True, lead=lead, target_updates=target_updates)
    await _write_audit(db, result, (AuditAction.LEAD_DELETED, details), lead_id, user_id)

    logger.info(f"[WORKFLOW] Lead {lead_id} deleted | user={user_id}")
    return result
