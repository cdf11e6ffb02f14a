"""Database diagnostics and on-demand schema bootstrap."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.schema import ensure_schema
from app.models.appointment import Appointment
from app.models.patient import Patient

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/db-status")
async def db_status(db: AsyncSession = Depends(get_db)):
    """Run a few cheap checks against the database and report each one."""
    checks = []

    async def run(name: str, statement):
        try:
            value = (await db.execute(statement)).scalar_one()
            checks.append({"check": name, "status": "success", "result": value})
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("DB check '%s' failed: %s", name, e)
            checks.append({"check": name, "status": "failed"})

    await run("connection", text("SELECT 1"))
    await run("patients", select(func.count()).select_from(Patient))
    await run("appointments", select(func.count()).select_from(Appointment))

    ok = all(c["status"] == "success" for c in checks)
    return JSONResponse(
        status_code=200 if ok else 500,
        content={
            "success": ok,
            "message": "All database checks passed" if ok else "Some database checks failed",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        },
    )


@router.post("/setup-db")
async def setup_db():
    """Force the schema bootstrapper to run again."""
    report = await ensure_schema(force=True)
    return JSONResponse(
        status_code=200 if report.ok else 500,
        content={
            "success": report.ok,
            "message": "Database schema is up to date" if report.ok else "Schema bootstrap had failures",
            "addedColumns": report.added_columns,
            "failedSteps": report.failed_steps,
        },
    )
