"""
Sales CRM - Lead model

RULES:
1. mobile_number is unique
2. profit_margin = sale_price - product_price, recomputed on every save
3. status "sold" requires sale_price > 0 and product_price > 0
"""

from typing import Optional, Union
from pydantic import BaseModel, ConfigDict
from enum import Enum


class LeadStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in-progress"
    SOLD = "sold"
    LOST = "lost"


VALID_LEAD_STATUSES = [s.value for s in LeadStatus]

# Incoming prices may arrive as numbers or numeric strings from the UI
PriceInput = Optional[Union[float, str]]


class LeadDocument(BaseModel):
    """
    Lead as stored in the database
    """
    model_config = ConfigDict(extra="ignore")  # Ignore MongoDB's _id field

    id: str
    customer_name: str
    mobile_number: str
    email: str = ""
    product_name: str = ""
    product_price: Optional[float] = None
    sale_price: Optional[float] = None
    profit_margin: float = 0
    source: str = ""
    status: LeadStatus = LeadStatus.NEW
    assigned_to: Optional[str] = None
    created_by: str
    created_at: str = ""
    updated_at: str = ""


class LeadUpdate(BaseModel):
    """Lead edit coming from the lead-update handler"""
    customer_name: Optional[str] = None
    mobile_number: Optional[str] = None
    email: Optional[str] = None
    product_name: Optional[str] = None
    product_price: PriceInput = None
    sale_price: PriceInput = None
    source: Optional[str] = None
    status: Optional[LeadStatus] = None
    assigned_to: Optional[str] = None  # "unassigned" clears the owner


class LeadCreate(BaseModel):
    customer_name: str
    mobile_number: str
    email: str = ""
    product_name: str = ""
    product_price: PriceInput = None
    sale_price: PriceInput = None
    source: str = ""
    status: LeadStatus = LeadStatus.NEW
    assigned_to: Optional[str] = None  # defaults to the creating agent
