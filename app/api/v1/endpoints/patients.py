"""Patient CRUD endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.appointment import AppointmentOut
from app.schemas.patient import PatientDetailOut, PatientOut
from app.services.patient_repository import PatientRepository
from app.services.validation import validate_patient_input, validate_patient_update

router = APIRouter()
logger = logging.getLogger(__name__)


def get_repository(db: AsyncSession = Depends(get_db)) -> PatientRepository:
    return PatientRepository(db)


@router.get("", response_model=list[PatientOut])
async def list_patients(repo: PatientRepository = Depends(get_repository)):
    """All patients, newest first."""
    return await repo.list_patients()


@router.post("", response_model=PatientOut, status_code=201)
async def create_patient(payload: Any = Body(...), repo: PatientRepository = Depends(get_repository)):
    data = validate_patient_input(payload)
    return await repo.create(data)


@router.get("/{patient_id}", response_model=PatientDetailOut)
async def get_patient(patient_id: str, repo: PatientRepository = Depends(get_repository)):
    """Patient record with its appointments."""
    patient = await repo.get_by_id(patient_id)
    appointments = await repo.appointments.list_for_patient(patient_id)
    return PatientDetailOut(
        **PatientOut.model_validate(patient).model_dump(),
        appointments=[AppointmentOut.model_validate(a) for a in appointments],
    )


@router.put("/{patient_id}", response_model=PatientOut)
async def update_patient(
    patient_id: str,
    payload: Any = Body(...),
    repo: PatientRepository = Depends(get_repository),
):
    changes = validate_patient_update(payload)
    return await repo.update(patient_id, changes)


@router.delete("/{patient_id}")
async def delete_patient(patient_id: str, repo: PatientRepository = Depends(get_repository)):
    """Remove the patient. Linked appointments stay, without a patient."""
    await repo.delete(patient_id)
    return {"success": True, "message": "Patient deleted"}
