"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Sales CRM - Target Ledger                                                   ║
║                                                                              ║
║  FIFO allocation of profit into dated targets, LIFO reversal.                ║
║                                                                              ║
║  INVARIANTS:                                                                 ║
║  - achieved never goes below 0                                               ║
║  - an existing target never receives more than amount - achieved,            ║
║    except today's overflow target                                            ║
║  - sum(allocated) == profit amount                                           ║
║                                                                              ║
║  Every function takes the db handle and the active session explicitly.       ║
║  Read-modify-write sequences must run inside a transaction                   ║
║  (see services.lead_workflow).                                               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
import math
import uuid
from typing import Any, Dict, List

from config import now_iso, today_iso, normalize_date, round_money
from models.target import AUTO_CREATED_DESCRIPTION

logger = logging.getLogger("target_ledger")

FIFO_ORDER = [("date", 1), ("created_at", 1)]
LIFO_ORDER = [("date", -1), ("created_at", -1)]


class TargetNotFoundError(Exception):
    pass


class DuplicateTargetDateError(Exception):
    pass


# ════════════════════════════════════════════════════════════════════════════
# ALLOCATION (FIFO)
# ════════════════════════════════════════════════════════════════════════════

async def _save_achieved(db, target: Dict[str, Any], achieved: float, session=None):
    await db.targets.update_one(
        {"id": target["id"]},
        {"$set": {"achieved": achieved, "updated_at": now_iso()}},
        session=session
    )


async def allocate_profit(db, profit_amount: float, user_id: str, session=None) -> Dict[str, Any]:
    """
    Distribute a profit over the targets, oldest first.

    Whatever the ledger cannot absorb goes to today's target: added to it
    (over-fill allowed) or, when there is none, a new target with
    amount = achieved = remaining.
    """
    if profit_amount is None or profit_amount <= 0:
        return {
            "success": True,
            "message": "No profit to allocate",
            "updated_targets": [],
            "total_allocated": 0,
            "remaining_profit": 0
        }

    profit_amount = round_money(profit_amount)
    targets = await db.targets.find({}, {"_id": 0}, session=session).sort(FIFO_ORDER).to_list(None)

    remaining = profit_amount
    updated_targets = []

    for target in targets:
        if remaining <= 0:
            break

        capacity = round_money(max(0, target["amount"] - target["achieved"]))
        if capacity <= 0:
            continue

        allocated = min(remaining, capacity)
        previous = target["achieved"]
        new_achieved = round_money(previous + allocated)
        remaining = round_money(remaining - allocated)

        await _save_achieved(db, target, new_achieved, session=session)

        updated_targets.append({
            "target_id": target["id"],
            "target_date": target["date"],
            "allocated": allocated,
            "previous_achieved": previous,
            "new_achieved": new_achieved,
            "target_amount": target["amount"],
            "is_complete": new_achieved >= target["amount"]
        })

    if remaining > 0:
        updated_targets.append(await _allocate_overflow(db, remaining, user_id, session=session))

    logger.info(
        f"[LEDGER] Allocated {profit_amount} over {len(updated_targets)} target(s) "
        f"| user={user_id}"
    )

    return {
        "success": True,
        "message": "Targets updated successfully using FIFO method",
        "updated_targets": updated_targets,
        "total_allocated": profit_amount,
        "remaining_profit": 0
    }


async def _allocate_overflow(db, remaining: float, user_id: str, session=None) -> Dict[str, Any]:
    """Put the leftover profit on today's target, creating it if needed."""
    today = today_iso()
    today_target = await db.targets.find_one({"date": today}, {"_id": 0}, session=session)

    if today_target:
        previous = today_target["achieved"]
        new_achieved = round_money(previous + remaining)
        await _save_achieved(db, today_target, new_achieved, session=session)
        return {
            "target_id": today_target["id"],
            "target_date": today,
            "allocated": remaining,
            "previous_achieved": previous,
            "new_achieved": new_achieved,
            "target_amount": today_target["amount"],
            "is_complete": new_achieved >= today_target["amount"],
            "is_existing_target": True
        }

    now = now_iso()
    new_target = {
        "id": str(uuid.uuid4()),
        "date": today,
        "amount": remaining,
        "achieved": remaining,
        "description": AUTO_CREATED_DESCRIPTION,
        "auto_created": True,
        "created_by": user_id,
        "created_at": now,
        "updated_at": now
    }
    await db.targets.insert_one(dict(new_target), session=session)

    logger.info(f"[LEDGER] Auto-created target {new_target['id']} for {today} ({remaining})")

    return {
        "target_id": new_target["id"],
        "target_date": today,
        "allocated": remaining,
        "previous_achieved": 0,
        "new_achieved": remaining,
        "target_amount": remaining,
        "is_complete": True,
        "is_new_target": True
    }


# ════════════════════════════════════════════════════════════════════════════
# REVERSAL (LIFO)
# ════════════════════════════════════════════════════════════════════════════

async def reverse_profit(db, profit_amount: float, user_id: str, session=None) -> Dict[str, Any]:
    """
    Remove a profit from the targets, most recent date first.

    Not an exact inverse of a given allocation. When the ledger holds less
    than profit_amount, the rest is reported in remaining_to_remove.
    """
    if profit_amount is None or profit_amount <= 0:
        return {
            "success": True,
            "message": "No profit to remove",
            "updated_targets": [],
            "total_removed": 0,
            "remaining_to_remove": 0
        }

    profit_amount = round_money(profit_amount)
    targets = await db.targets.find(
        {"achieved": {"$gt": 0}}, {"_id": 0}, session=session
    ).sort(LIFO_ORDER).to_list(None)

    remaining = profit_amount
    updated_targets = []

    for target in targets:
        if remaining <= 0:
            break

        removed = round_money(min(remaining, target["achieved"]))
        if removed <= 0:
            continue

        previous = target["achieved"]
        new_achieved = round_money(max(0, previous - removed))
        remaining = round_money(remaining - removed)

        await _save_achieved(db, target, new_achieved, session=session)

        updated_targets.append({
            "target_id": target["id"],
            "target_date": target["date"],
            "removed": removed,
            "previous_achieved": previous,
            "new_achieved": new_achieved,
            "target_amount": target["amount"]
        })

    if remaining > 0:
        logger.warning(
            f"[LEDGER] Reversal of {profit_amount} left {remaining} undrained "
            f"(ledger exhausted) | user={user_id}"
        )

    return {
        "success": True,
        "message": "Profit allocation reversed successfully",
        "updated_targets": updated_targets,
        "total_removed": round_money(profit_amount - remaining),
        "remaining_to_remove": remaining
    }


# ════════════════════════════════════════════════════════════════════════════
# TARGET CRUD & SUMMARY
# ════════════════════════════════════════════════════════════════════════════

async def list_targets(db) -> List[Dict[str, Any]]:
    return await db.targets.find({}, {"_id": 0}).sort([("date", -1)]).to_list(None)


async def get_target(db, target_id: str) -> Dict[str, Any]:
    target = await db.targets.find_one({"id": target_id}, {"_id": 0})
    if not target:
        raise TargetNotFoundError(f"Target {target_id} not found")
    return target


async def create_target(db, data: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """Manual creation. One target per date."""
    target_date = normalize_date(data["date"])

    existing = await db.targets.find_one({"date": target_date}, {"_id": 0})
    if existing:
        raise DuplicateTargetDateError("Target for this date already exists")

    now = now_iso()
    target = {
        "id": str(uuid.uuid4()),
        "date": target_date,
        "amount": round_money(data["amount"]),
        "achieved": round_money(data.get("achieved") or 0),
        "description": (data.get("description") or "").strip(),
        "auto_created": False,
        "created_by": user_id,
        "created_at": now,
        "updated_at": now
    }
    await db.targets.insert_one(dict(target))

    logger.info(f"[LEDGER] Target {target['id']} created for {target_date} by {user_id}")
    return target


async def update_target(db, target_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Admin edit of date/amount/achieved/description."""
    target = await get_target(db, target_id)

    update_data = {k: v for k, v in data.items() if v is not None}
    if "date" in update_data:
        update_data["date"] = normalize_date(update_data["date"])
        if update_data["date"] != target["date"]:
            clash = await db.targets.find_one({"date": update_data["date"]}, {"_id": 0})
            if clash:
                raise DuplicateTargetDateError("Target for this date already exists")
    for key in ("amount", "achieved"):
        if key in update_data:
            update_data[key] = round_money(update_data[key])
    update_data["updated_at"] = now_iso()

    await db.targets.update_one({"id": target_id}, {"$set": update_data})
    return await get_target(db, target_id)


async def delete_target(db, target_id: str) -> None:
    result = await db.targets.delete_one({"id": target_id})
    if result.deleted_count == 0:
        raise TargetNotFoundError(f"Target {target_id} not found")
    logger.info(f"[LEDGER] Target {target_id} deleted")


async def get_main_target_summary(db) -> Dict[str, Any]:
    """Totals over every target."""
    targets = await db.targets.find({}, {"_id": 0, "amount": 1, "achieved": 1}).to_list(None)

    total = round_money(sum(t.get("amount", 0) for t in targets))
    achieved = round_money(sum(t.get("achieved", 0) for t in targets))
    # half up, not banker's rounding
    percentage = math.floor(achieved / total * 100 + 0.5) if total > 0 else 0

    return {
        "total": total,
        "achieved": achieved,
        "remaining": round_money(total - achieved),
        "percentage": percentage
    }
