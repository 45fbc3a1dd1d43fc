"""
Sales CRM - API Backend

Start with:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
import logging

from config import client, db, CORS_ORIGINS, LOG_LEVEL

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("sales_crm")

app = FastAPI(
    title="Sales CRM",
    description="Leads, revenue targets and profit allocation",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== ROUTES ====================

from routes import leads, targets, audit_logs

app.include_router(leads.router, prefix="/api")
app.include_router(targets.router, prefix="/api")
app.include_router(audit_logs.router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": "Sales CRM API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


async def ensure_indexes(database):
    """Indexes the ledger ordering and the audit queries rely on."""
    await database.targets.create_index("id", unique=True)
    await database.targets.create_index([("date", 1), ("created_at", 1)])
    # at most one auto-created target per date
    await database.targets.create_index(
        "date", unique=True, partialFilterExpression={"auto_created": True}
    )
    await database.leads.create_index("id", unique=True)
    await database.leads.create_index("mobile_number", unique=True)
    await database.audit_logs.create_index([("entity_type", 1), ("entity_id", 1), ("timestamp", -1)])
    await database.audit_logs.create_index([("user_id", 1), ("timestamp", -1)])
    await database.audit_logs.create_index([("action", 1), ("timestamp", -1)])


@app.on_event("startup")
async def startup():
    await ensure_indexes(db)
    logger.info("Indexes ensured")


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()
