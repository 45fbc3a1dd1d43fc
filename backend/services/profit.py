"""
Sales CRM - Profit calculation & sold-lead validation

Pure functions, no database access.
"""

import math
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from config import round_money


INVALID_PRICE_MESSAGE = "Invalid price data: Both sale price and product price must be valid numbers"


class InvalidPriceError(ValueError):
    """Raised when sale/product prices are missing, non numeric or negative"""
    pass


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def parse_price(value: Any) -> Optional[float]:
    """
    Coerce an incoming price (number or numeric string) to float.
    Returns None when the value is empty or unparsable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = float(value)
        except ValueError:
            return None
    if not _is_number(value):
        return None
    return float(value)


def parse_price_input(value: Any) -> Optional[float]:
    """
    parse_price for values coming from a request: empty means "no price",
    anything else must parse or InvalidPriceError is raised.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    price = parse_price(value)
    if price is None:
        raise InvalidPriceError(INVALID_PRICE_MESSAGE)
    return price


def calculate_profit_margin(sale_price: Any, product_price: Any) -> float:
    """
    Profit margin = sale_price - product_price, rounded to 2 decimals.
    A negative result (a loss) is legal.
    """
    if not _is_number(sale_price) or not _is_number(product_price):
        raise InvalidPriceError(INVALID_PRICE_MESSAGE)
    if sale_price < 0 or product_price < 0:
        raise InvalidPriceError("Invalid price data: Prices cannot be negative")

    return round_money(sale_price - product_price)


def compute_lead_profit_margin(lead: Dict[str, Any]) -> Optional[float]:
    """
    Profit margin to persist when a lead is saved.
    - both prices present and numeric -> calculated margin
    - only one present                -> 0
    - neither present                 -> None (keep the stored value)
    """
    sale_price = parse_price(lead.get("sale_price"))
    product_price = parse_price(lead.get("product_price"))

    if sale_price and product_price:
        return calculate_profit_margin(sale_price, product_price)
    if sale_price or product_price:
        return 0.0
    return None


@dataclass
class SoldLeadValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def validate_sold_lead(lead_data: Dict[str, Any]) -> SoldLeadValidation:
    """
    Checks the business rules for a lead entering "sold".
    Every violated rule is reported, not just the first one.
    """
    errors = []
    sale_price = parse_price(lead_data.get("sale_price"))
    product_price = parse_price(lead_data.get("product_price"))

    if not sale_price or sale_price <= 0:
        errors.append("Sale price must be greater than 0 for sold leads")

    if not product_price or product_price <= 0:
        errors.append("Product price must be greater than 0 for sold leads")

    # Missing or unparsable ("abc", NaN)
    if sale_price is None or product_price is None:
        errors.append("Sale price and product price must be valid numbers")

    return SoldLeadValidation(is_valid=len(errors) == 0, errors=errors)
