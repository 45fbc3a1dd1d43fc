"""
Sales CRM - Data integrity check

Read-only scan for records the workflow should never produce.
"""

import logging
from typing import Any, Dict, List

from services.profit import InvalidPriceError, compute_lead_profit_margin, parse_price

logger = logging.getLogger("integrity")

MAX_EXAMPLES = 3


def _issue(issue_type: str, examples: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "type": issue_type,
        "count": len(examples),
        "examples": examples[:MAX_EXAMPLES]
    }


async def check_data_integrity(db) -> Dict[str, Any]:
    """
    Reports:
    - invalid_profit_margins: stored margin differs from sale - product
    - negative_target_achieved: targets with achieved < 0
    - sold_leads_without_pricing: sold leads missing a positive price
    """
    issues = []

    leads = await db.leads.find({}, {"_id": 0}).to_list(None)

    bad_margins = []
    for lead in leads:
        stored = lead.get("profit_margin")
        try:
            expected = compute_lead_profit_margin(lead)
        except InvalidPriceError:
            expected = None
        if stored is None or (expected is not None and abs(stored - expected) > 0.005):
            bad_margins.append({
                "id": lead.get("id"),
                "sale_price": lead.get("sale_price"),
                "product_price": lead.get("product_price"),
                "profit_margin": stored,
                "calculated_profit": expected
            })
    if bad_margins:
        issues.append(_issue("invalid_profit_margins", bad_margins))

    negative_targets = await db.targets.find({"achieved": {"$lt": 0}}, {"_id": 0}).to_list(None)
    if negative_targets:
        issues.append(_issue("negative_target_achieved", negative_targets))

    unpriced = [
        {"id": lead.get("id"), "sale_price": lead.get("sale_price"), "product_price": lead.get("product_price")}
        for lead in leads
        if lead.get("status") == "sold"
        and not ((parse_price(lead.get("sale_price")) or 0) > 0 and (parse_price(lead.get("product_price")) or 0) > 0)
    ]
    if unpriced:
        issues.append(_issue("sold_leads_without_pricing", unpriced))

    if issues:
        logger.warning(f"[INTEGRITY] {len(issues)} issue type(s): {[i['type'] for i in issues]}")

    return {
        "healthy": len(issues) == 0,
        "issues": issues
    }
