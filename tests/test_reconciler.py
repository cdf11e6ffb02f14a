"""Tests for the booking reconciler and the repository paths it drives."""

import asyncio
from datetime import datetime

import pytest
from unittest.mock import patch, AsyncMock, MagicMock
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import StoreError
from app.models.appointment import Appointment
from app.services.appointment_repository import AppointmentRepository
from app.services.booking_reconciler import BookingReconciler, ReconcileAction, booking_fields
from app.services.validation import validate_webhook_payload


def _values(external_id="sesami_bk_9"):
    return {
        "external_booking_id": external_id,
        "customer_name": "Sam Reed",
        "service_name": "Microchipping",
        "start_time": datetime(2025, 4, 2, 13, 0),
        "end_time": datetime(2025, 4, 2, 13, 30),
        "duration_minutes": 30,
        "status": "confirmed",
    }


async def _count(db, external_id):
    result = await db.execute(
        select(func.count()).select_from(Appointment).where(Appointment.external_booking_id == external_id)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_external_returns_none_on_duplicate(db, session_factory):
    """The unique index turns a second insert into a no-op, not an error."""
    first = await AppointmentRepository(db).create_external(_values())
    assert first is not None

    async with session_factory() as other:
        second = await AppointmentRepository(other).create_external(_values())
    assert second is None
    assert await _count(db, "sesami_bk_9") == 1


@pytest.mark.asyncio
async def test_reconciler_treats_lost_insert_race_as_duplicate(db, session_factory, booking_payload):
    """If the existence check misses a concurrent insert, the constraint still holds."""
    payload = validate_webhook_payload(booking_payload(booking_id="sesami_bk_9"))
    await AppointmentRepository(db).create_external(_values())

    async with session_factory() as session:
        repo = AppointmentRepository(session)
        with patch.object(repo, "find_by_external_id", new_callable=AsyncMock, return_value=None):
            result = await BookingReconciler(repo).handle(payload)

    assert result.action == ReconcileAction.DUPLICATE
    assert await _count(db, "sesami_bk_9") == 1


@pytest.mark.asyncio
async def test_event_sequence_ends_cancelled(db, booking_payload):
    reconciler = BookingReconciler(AppointmentRepository(db))
    events = [
        booking_payload(event="appointment.created"),
        booking_payload(event="appointment.updated", service_title="Booster Shot"),
        booking_payload(event="appointment.cancelled"),
        booking_payload(event="appointment.created"),
    ]
    actions = []
    for raw in events:
        result = await reconciler.handle(validate_webhook_payload(raw))
        actions.append(result.action)

    assert actions == [
        ReconcileAction.CREATED,
        ReconcileAction.UPDATED,
        ReconcileAction.CANCELLED,
        ReconcileAction.DUPLICATE,
    ]
    appt = await AppointmentRepository(db).find_by_external_id("sesami_bk_1001")
    assert appt.status == "cancelled"
    assert appt.service_name == "Booster Shot"


@pytest.mark.asyncio
async def test_cancel_before_create_is_ignored(db, booking_payload):
    reconciler = BookingReconciler(AppointmentRepository(db))
    result = await reconciler.handle(validate_webhook_payload(booking_payload(event="appointment.cancelled")))
    assert result.action == ReconcileAction.IGNORED
    assert result.appointment_id is None
    assert await _count(db, "sesami_bk_1001") == 0


def test_booking_fields_mapping(booking_payload):
    payload = validate_webhook_payload(booking_payload(resource_name=None))
    fields = booking_fields(payload)
    assert fields["service_name"] == "Annual Vaccination"
    assert fields["staff_member"] is None
    assert fields["start_time"] == datetime(2025, 3, 14, 15, 0)
    assert fields["duration_minutes"] == 45
    assert fields["tags"] == "returning,vaccination"
    assert "external_booking_id" not in fields


@pytest.mark.asyncio
async def test_create_external_raises_on_other_constraint_failures(db):
    values = _values()
    values["customer_name"] = None
    with pytest.raises(StoreError):
        await AppointmentRepository(db).create_external(values)
    assert await _count(db, "sesami_bk_9") == 0


def test_long_resource_name_fits_staff_member(booking_payload):
    payload = validate_webhook_payload(booking_payload(resource_name="R" * 200))
    fields = booking_fields(payload)
    assert len(fields["staff_member"]) <= Appointment.__table__.c.staff_member.type.length
    assert fields["resource_name"] == "R" * 200


@pytest.mark.asyncio
async def test_external_updates_do_not_notify(db):
    notifier = MagicMock()
    repo = AppointmentRepository(db, notifier=notifier)
    await repo.create_external(_values())

    await repo.update_by_external_id("sesami_bk_9", {"notes": "from Sesami"})
    await repo.cancel_by_external_id("sesami_bk_9")
    notifier.notify.assert_not_called()


@pytest.mark.asyncio
async def test_local_cancel_notifies_once(db):
    notifier = MagicMock()
    repo = AppointmentRepository(db, notifier=notifier)
    appt = await repo.create_external(_values())

    await repo.cancel(appt.id)
    notifier.notify.assert_called_once_with("sesami_bk_9", "cancel")


@pytest.mark.asyncio
async def test_unlink_patient_keeps_appointments(db):
    repo = AppointmentRepository(db)
    values = _values()
    values["patient_id"] = "patient-1"
    appt = await repo.create_external(values)

    await repo.unlink_patient("patient-1")
    refreshed = await repo.get_by_id(appt.id)
    await db.refresh(refreshed)
    assert refreshed.patient_id is None


@pytest.mark.asyncio
async def test_driver_errors_become_store_errors(db):
    repo = AppointmentRepository(db)
    failure = OperationalError("SELECT", {}, Exception("connection lost"))
    with patch.object(db, "execute", new_callable=AsyncMock, side_effect=failure):
        with pytest.raises(StoreError):
            await repo.list_appointments()


@pytest.mark.asyncio
async def test_slow_store_times_out(db):
    async def hang(*args, **kwargs):
        await asyncio.sleep(5)

    repo = AppointmentRepository(db)
    with patch("app.services.store.settings.DB_OPERATION_TIMEOUT_SECONDS", 0.01), \
         patch.object(db, "execute", side_effect=hang):
        with pytest.raises(StoreError):
            await repo.get_by_id("anything")
