"""Patient persistence."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.appointment import utcnow
from app.models.patient import Patient
from app.schemas.patient import PatientCreate, PatientUpdate
from app.services.appointment_repository import AppointmentRepository
from app.services.store import BoundedStore

logger = logging.getLogger(__name__)


class PatientRepository(BoundedStore):
    def __init__(self, db: AsyncSession, appointments: Optional[AppointmentRepository] = None):
        super().__init__(db)
        self.appointments = appointments or AppointmentRepository(db)

    async def list_patients(self) -> list[Patient]:
        """Newest first."""
        result = await self._execute(
            select(Patient).order_by(Patient.created_at.desc()), "list_patients"
        )
        return list(result.scalars().all())

    async def get_by_id(self, patient_id: str) -> Patient:
        result = await self._execute(select(Patient).where(Patient.id == patient_id), "get_patient")
        patient = result.scalar_one_or_none()
        if patient is None:
            raise NotFoundError("Patient", patient_id)
        return patient

    async def create(self, data: PatientCreate) -> Patient:
        values = data.model_dump()
        values["gender"] = data.gender.value
        now = utcnow()
        patient = Patient(**values, created_at=now, updated_at=now)
        self.db.add(patient)
        await self._commit("create_patient")
        await self._refresh(patient, "create_patient")
        logger.info("Registered patient %s", patient.id)
        return patient

    async def update(self, patient_id: str, changes: PatientUpdate) -> Patient:
        patient = await self.get_by_id(patient_id)
        for key, value in changes.model_dump(exclude_unset=True).items():
            if key == "gender":
                value = value.value
            setattr(patient, key, value)
        patient.updated_at = utcnow()
        await self._commit("update_patient")
        await self._refresh(patient, "update_patient")
        return patient

    async def delete(self, patient_id: str) -> None:
        """Hard delete. The patient's appointments are kept but unlinked."""
        patient = await self.get_by_id(patient_id)
        await self.appointments.unlink_patient(patient_id, commit=False)
        await self.db.delete(patient)
        await self._commit("delete_patient")
        logger.info("Deleted patient %s", patient_id)
