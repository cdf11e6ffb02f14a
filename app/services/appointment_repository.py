"""Appointment persistence.

All reads and writes of the appointments table go through
``AppointmentRepository``. Statements and commits are bounded by
``DB_OPERATION_TIMEOUT_SECONDS``; driver failures and timeouts surface as
``StoreError``.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Protocol

from sqlalchemy import select, update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, StoreError, ValidationError
from app.models.appointment import Appointment, AppointmentStatus, utcnow
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate
from app.services.store import BoundedStore
from app.services.validation import check_time_window, minutes_between

logger = logging.getLogger(__name__)


class BookingChangeNotifier(Protocol):
    def notify(self, external_booking_id: str, action: str) -> None: ...


class AppointmentRepository(BoundedStore):
    def __init__(self, db: AsyncSession, notifier: Optional[BookingChangeNotifier] = None):
        super().__init__(db)
        self.notifier = notifier

    def _notify(self, appointment: Appointment, action: str) -> None:
        if self.notifier and appointment.external_booking_id:
            self.notifier.notify(appointment.external_booking_id, action)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_appointments(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[Appointment]:
        """Appointments ordered by start time. Each bound is applied independently."""
        query = select(Appointment)
        if start is not None:
            query = query.where(Appointment.start_time >= start)
        if end is not None:
            query = query.where(Appointment.end_time <= end)
        query = query.order_by(Appointment.start_time.asc())
        result = await self._execute(query, "list_appointments")
        return list(result.scalars().all())

    async def list_for_patient(self, patient_id: str) -> list[Appointment]:
        query = (
            select(Appointment)
            .where(Appointment.patient_id == patient_id)
            .order_by(Appointment.start_time.asc())
        )
        result = await self._execute(query, "list_for_patient")
        return list(result.scalars().all())

    async def get_by_id(self, appointment_id: str) -> Appointment:
        result = await self._execute(
            select(Appointment).where(Appointment.id == appointment_id), "get_by_id"
        )
        appointment = result.scalar_one_or_none()
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    async def find_by_external_id(self, external_booking_id: str) -> Optional[Appointment]:
        result = await self._execute(
            select(Appointment).where(Appointment.external_booking_id == external_booking_id),
            "find_by_external_id",
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, data: AppointmentCreate) -> Appointment:
        """Insert an internally scheduled appointment. ``data`` is already validated."""
        values = data.model_dump()
        if values.get("duration_minutes") is None:
            values["duration_minutes"] = minutes_between(data.start_time, data.end_time)
        values["status"] = data.status.value
        now = utcnow()
        appointment = Appointment(**values, created_at=now, updated_at=now)
        self.db.add(appointment)
        await self._commit("create")
        await self._refresh(appointment, "create")
        logger.info("Created appointment %s at %s", appointment.id, appointment.start_time)
        return appointment

    async def create_external(self, values: dict[str, Any]) -> Optional[Appointment]:
        """Insert a booking that originated outside the system.

        Returns None when a row with the same external_booking_id already
        exists (including one inserted concurrently), leaving the store
        unchanged.
        """
        now = utcnow()
        appointment = Appointment(**values, created_at=now, updated_at=now)
        self.db.add(appointment)
        try:
            await self._commit("create_external")
        except IntegrityError as exc:
            await self._safe_rollback()
            external_id = values.get("external_booking_id")
            # Only the external id index makes this a replay; other constraints are real failures
            if external_id is None or await self.find_by_external_id(external_id) is None:
                logger.error("Insert of booking %s violated a constraint: %s", external_id, exc.orig)
                raise StoreError("create_external failed") from exc
            logger.info("Booking %s already stored, insert skipped", external_id)
            return None
        await self._refresh(appointment, "create_external")
        return appointment

    async def update(self, appointment_id: str, changes: AppointmentUpdate) -> Appointment:
        """Apply a partial update, keeping start/end/duration consistent."""
        appointment = await self.get_by_id(appointment_id)
        supplied = changes.model_dump(exclude_unset=True)
        self._apply_window(appointment, supplied)

        for key, value in supplied.items():
            if isinstance(value, AppointmentStatus):
                value = value.value
            setattr(appointment, key, value)
        appointment.updated_at = utcnow()

        await self._commit("update")
        await self._refresh(appointment, "update")
        self._notify(appointment, "update")
        return appointment

    async def cancel(self, appointment_id: str) -> Appointment:
        """Soft delete: the row stays, status becomes cancelled."""
        appointment = await self.get_by_id(appointment_id)
        appointment.status = AppointmentStatus.CANCELLED.value
        appointment.updated_at = utcnow()
        await self._commit("cancel")
        await self._refresh(appointment, "cancel")
        self._notify(appointment, "cancel")
        return appointment

    async def update_by_external_id(
        self, external_booking_id: str, values: dict[str, Any]
    ) -> Optional[Appointment]:
        """Overwrite a booking's fields from the booking system. Never notifies back."""
        appointment = await self.find_by_external_id(external_booking_id)
        if appointment is None:
            return None
        for key, value in values.items():
            setattr(appointment, key, value)
        appointment.updated_at = utcnow()
        await self._commit("update_by_external_id")
        await self._refresh(appointment, "update_by_external_id")
        return appointment

    async def cancel_by_external_id(self, external_booking_id: str) -> Optional[Appointment]:
        appointment = await self.find_by_external_id(external_booking_id)
        if appointment is None:
            return None
        appointment.status = AppointmentStatus.CANCELLED.value
        appointment.updated_at = utcnow()
        await self._commit("cancel_by_external_id")
        await self._refresh(appointment, "cancel_by_external_id")
        return appointment

    async def unlink_patient(self, patient_id: str, commit: bool = True) -> None:
        """Detach a deleted patient's appointments; the bookings themselves stay."""
        await self._execute(
            sa_update(Appointment)
            .where(Appointment.patient_id == patient_id)
            .values(patient_id=None, updated_at=utcnow()),
            "unlink_patient",
        )
        if commit:
            await self._commit("unlink_patient")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_window(appointment: Appointment, supplied: dict[str, Any]) -> None:
        """Re-derive whichever of end_time / duration_minutes the caller left out.

        Mutates ``supplied`` so the final start/end/duration agree, or raises
        ValidationError when they cannot.
        """
        touched = {"start_time", "end_time", "duration_minutes"} & supplied.keys()
        if not touched:
            return

        start = supplied.get("start_time", appointment.start_time)
        has_end = "end_time" in supplied and supplied["end_time"] is not None
        duration = supplied.get("duration_minutes")

        if duration is not None and not has_end:
            # Length changed (or start moved with an explicit length): move the end
            supplied["end_time"] = start + timedelta(minutes=duration)
            return

        end = supplied["end_time"] if has_end else appointment.end_time
        errors, derived = check_time_window(start, end, duration)
        if errors:
            raise ValidationError(errors)
        supplied["duration_minutes"] = derived
