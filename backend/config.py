"""
Configuration and shared helpers
"""

import os
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Load .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'sales_crm')

# Transactions need a replica set; a standalone mongod rejects them
client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()


# ==================== HELPERS ====================

def now_iso() -> str:
    """Current UTC date/time as ISO string"""
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    """Today's calendar date (midnight-normalized) as YYYY-MM-DD"""
    return datetime.now(timezone.utc).date().isoformat()


def normalize_date(value) -> str:
    """
    Normalize a date/datetime/ISO string to its calendar day (YYYY-MM-DD).
    The time-of-day part is dropped.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    text = str(value).strip()
    if not text:
        raise ValueError("Empty date")
    return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()


def round_money(value: float) -> float:
    """Two-decimal monetary rounding"""
    # + 0.0 turns -0.0 into 0.0
    return round(float(value), 2) + 0.0
