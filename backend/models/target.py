"""
Sales CRM - Target model

A target is a dated revenue goal:
- amount   = capacity
- achieved = filled amount (may exceed amount for the overflow target)
"""

import datetime as dt
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


AUTO_CREATED_DESCRIPTION = "Auto-created from excess profit allocation"


class TargetDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    date: str  # YYYY-MM-DD
    amount: float
    achieved: float = 0
    description: str = ""
    auto_created: bool = False
    created_by: str
    created_at: str = ""
    updated_at: str = ""


class TargetCreate(BaseModel):
    date: dt.date
    amount: float = Field(ge=0)
    achieved: float = Field(default=0, ge=0)
    description: str = ""


class TargetUpdate(BaseModel):
    """Admin edit. Every field optional."""
    date: Optional[dt.date] = None
    amount: Optional[float] = Field(default=None, ge=0)
    achieved: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None


class MainTargetSummary(BaseModel):
    total: float
    achieved: float
    remaining: float
    percentage: int
