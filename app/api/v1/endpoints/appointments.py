"""Appointment CRUD endpoints.

Thin HTTP layer: validate, delegate to AppointmentRepository, shape the
response. DELETE is a soft cancel; the row stays retrievable.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.appointment import AppointmentMutationOut, AppointmentOut
from app.services.appointment_repository import AppointmentRepository
from app.services.sesami_sync import BackgroundSyncDispatcher
from app.services.validation import (
    validate_appointment_input,
    validate_appointment_update,
    validate_range_filter,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def get_repository(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
) -> AppointmentRepository:
    """Repository whose update/cancel side effects reach Sesami after the response."""
    return AppointmentRepository(db, notifier=BackgroundSyncDispatcher(background_tasks))


@router.get("", response_model=list[AppointmentOut])
async def list_appointments(
    start: Optional[str] = Query(None, description="ISO-8601; only appointments starting at or after"),
    end: Optional[str] = Query(None, description="ISO-8601; only appointments ending at or before"),
    repo: AppointmentRepository = Depends(get_repository),
):
    """List appointments ordered by start time."""
    start_at, end_at = validate_range_filter(start, end)
    return await repo.list_appointments(start_at, end_at)


@router.post("", response_model=AppointmentOut, status_code=201)
async def create_appointment(
    payload: Any = Body(...),
    repo: AppointmentRepository = Depends(get_repository),
):
    data = validate_appointment_input(payload)
    return await repo.create(data)


@router.get("/{appointment_id}", response_model=AppointmentOut)
async def get_appointment(appointment_id: str, repo: AppointmentRepository = Depends(get_repository)):
    return await repo.get_by_id(appointment_id)


@router.put("/{appointment_id}", response_model=AppointmentMutationOut)
async def update_appointment(
    appointment_id: str,
    payload: Any = Body(...),
    repo: AppointmentRepository = Depends(get_repository),
):
    """Partial update. Start, end and duration are kept consistent."""
    changes = validate_appointment_update(payload)
    appointment = await repo.update(appointment_id, changes)
    return AppointmentMutationOut(
        message="Appointment updated",
        appointment=AppointmentOut.model_validate(appointment),
    )


@router.delete("/{appointment_id}", response_model=AppointmentMutationOut, response_model_exclude_none=True)
async def cancel_appointment(appointment_id: str, repo: AppointmentRepository = Depends(get_repository)):
    """Soft delete: marks the appointment cancelled."""
    await repo.cancel(appointment_id)
    logger.info("Cancelled appointment %s", appointment_id)
    return AppointmentMutationOut(message="Appointment cancelled")
