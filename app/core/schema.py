"""Idempotent schema bootstrapper.

Brings an existing database up to the current appointment/patient layout
without a migration run: creates missing tables, adds the booking columns
introduced after the first release and makes sure the indexes exist.
Alembic revisions describe the same schema for deploy-time upgrades.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.database import Base, engine as default_engine
from app.core.exceptions import SchemaBootstrapError
from app.models.appointment import Appointment
from app.models.patient import Patient

logger = logging.getLogger(__name__)

_schema_lock = asyncio.Lock()
_schema_checked = False

# Columns the first appointments table did not have
APPOINTMENT_MIGRATION_STEPS = [
    ("external_booking_id", "ALTER TABLE appointments ADD COLUMN external_booking_id VARCHAR(255)"),
    ("external_customer_id", "ALTER TABLE appointments ADD COLUMN external_customer_id VARCHAR(255)"),
    ("service_id", "ALTER TABLE appointments ADD COLUMN service_id VARCHAR(255)"),
    ("resource_id", "ALTER TABLE appointments ADD COLUMN resource_id VARCHAR(255)"),
    ("resource_name", "ALTER TABLE appointments ADD COLUMN resource_name VARCHAR(255)"),
    ("time_zone", "ALTER TABLE appointments ADD COLUMN time_zone VARCHAR(64)"),
    ("tags", "ALTER TABLE appointments ADD COLUMN tags TEXT"),
]

INDEX_STEPS = [
    (
        "uq_appointments_external_booking_id",
        "CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_external_booking_id "
        "ON appointments(external_booking_id)",
    ),
    (
        "idx_appointments_time_range",
        "CREATE INDEX IF NOT EXISTS idx_appointments_time_range ON appointments(start_time, end_time)",
    ),
    (
        "ix_appointments_patient_id",
        "CREATE INDEX IF NOT EXISTS ix_appointments_patient_id ON appointments(patient_id)",
    ),
]


@dataclass
class SchemaReport:
    skipped: bool = False
    added_columns: list[str] = field(default_factory=list)
    failed_steps: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_steps


def _appointment_columns(sync_conn) -> set[str]:
    return {column["name"] for column in inspect(sync_conn).get_columns("appointments")}


async def _run_step(bind: AsyncEngine, name: str, statement: str, report: SchemaReport) -> bool:
    # One transaction per step so a failure does not poison the rest
    try:
        async with bind.begin() as conn:
            await conn.execute(text(statement))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Schema step failed, continuing: %s", SchemaBootstrapError(f"{name}: {exc}"))
        report.failed_steps.append(name)
        return False
    return True


async def ensure_schema(bind: AsyncEngine | None = None, force: bool = False) -> SchemaReport:
    """Make sure tables, late columns and indexes exist.

    Runs once per process unless ``force`` is set. Never raises: each failed
    step is logged and recorded in the returned report.
    """
    global _schema_checked

    if _schema_checked and not force:
        return SchemaReport(skipped=True)

    bind = bind or default_engine
    report = SchemaReport()

    async with _schema_lock:
        if _schema_checked and not force:
            return SchemaReport(skipped=True)

        try:
            async with bind.begin() as conn:
                await conn.run_sync(
                    Base.metadata.create_all,
                    tables=[Patient.__table__, Appointment.__table__],
                )
                existing = await conn.run_sync(_appointment_columns)
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "Schema bootstrap could not inspect the database: %s",
                SchemaBootstrapError(f"create tables: {exc}"),
            )
            report.failed_steps.append("create_tables")
            return report

        for column_name, statement in APPOINTMENT_MIGRATION_STEPS:
            if column_name in existing:
                continue
            if await _run_step(bind, f"add_column:{column_name}", statement, report):
                logger.info("Added appointments.%s", column_name)
                report.added_columns.append(column_name)

        for index_name, statement in INDEX_STEPS:
            await _run_step(bind, f"index:{index_name}", statement, report)

        _schema_checked = report.ok
        logger.info(
            "Schema bootstrap finished (added columns: %s, failed steps: %s)",
            report.added_columns or "none",
            report.failed_steps or "none",
        )
    return report


def reset_schema_flag() -> None:
    """Forget that the schema was checked. Used by tests."""
    global _schema_checked
    _schema_checked = False
