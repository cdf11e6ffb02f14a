"""Apply Sesami booking events to the appointment store.

Events may arrive more than once and out of order. The reconciler keys every
event on the external booking id, so replays are no-ops and an update or
cancel for a booking that was never created changes nothing.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.models.appointment import Appointment
from app.schemas.common import join_tags
from app.schemas.webhook import BookingWebhookPayload, WebhookEvent
from app.services.appointment_repository import AppointmentRepository
from app.services.validation import minutes_between

logger = logging.getLogger(__name__)

# Sesami resource names can be longer than the staff label column
STAFF_MEMBER_MAX_LENGTH = Appointment.__table__.c.staff_member.type.length


class ReconcileAction(str, enum.Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    UPDATED = "updated"
    CANCELLED = "cancelled"
    IGNORED = "ignored"


@dataclass
class ReconcileResult:
    action: ReconcileAction
    external_booking_id: str
    appointment_id: Optional[str] = None


def _truncate(value: Optional[str], limit: int) -> Optional[str]:
    if value is None:
        return None
    return value[:limit]


def booking_fields(payload: BookingWebhookPayload) -> dict[str, Any]:
    """Appointment column values carried by a booking event."""
    booking = payload.booking
    customer = payload.customer
    metadata = payload.metadata
    return {
        "customer_name": customer.name,
        "customer_email": customer.email,
        "customer_phone": customer.phone,
        "external_customer_id": customer.external_customer_id,
        "service_name": booking.service_title,
        "service_id": booking.service_id,
        "staff_member": _truncate(booking.resource_name, STAFF_MEMBER_MAX_LENGTH),
        "resource_id": booking.resource_id,
        "resource_name": booking.resource_name,
        "start_time": booking.starts_at,
        "end_time": booking.ends_at,
        "duration_minutes": minutes_between(booking.starts_at, booking.ends_at),
        "time_zone": booking.time_zone,
        "status": booking.status.value,
        "notes": metadata.notes,
        "tags": join_tags(metadata.tags),
    }


class BookingReconciler:
    def __init__(self, repository: AppointmentRepository):
        self.repository = repository

    async def handle(self, payload: BookingWebhookPayload) -> ReconcileResult:
        external_id = payload.booking.id
        logger.info("Reconciling %s for booking %s", payload.event.value, external_id)

        if payload.event == WebhookEvent.CREATED:
            result = await self._created(payload)
        elif payload.event == WebhookEvent.UPDATED:
            result = await self._updated(payload)
        else:
            result = await self._cancelled(external_id)

        logger.info("Booking %s: %s", external_id, result.action.value)
        return result

    async def _created(self, payload: BookingWebhookPayload) -> ReconcileResult:
        external_id = payload.booking.id
        existing = await self.repository.find_by_external_id(external_id)
        if existing is not None:
            return ReconcileResult(ReconcileAction.DUPLICATE, external_id, existing.id)

        values = booking_fields(payload)
        values["external_booking_id"] = external_id
        appointment = await self.repository.create_external(values)
        if appointment is None:
            # Lost a race with a concurrent delivery of the same event
            return ReconcileResult(ReconcileAction.DUPLICATE, external_id)
        return ReconcileResult(ReconcileAction.CREATED, external_id, appointment.id)

    async def _updated(self, payload: BookingWebhookPayload) -> ReconcileResult:
        external_id = payload.booking.id
        appointment = await self.repository.update_by_external_id(external_id, booking_fields(payload))
        if appointment is None:
            logger.warning("Update for unknown booking %s ignored", external_id)
            return ReconcileResult(ReconcileAction.IGNORED, external_id)
        return ReconcileResult(ReconcileAction.UPDATED, external_id, appointment.id)

    async def _cancelled(self, external_id: str) -> ReconcileResult:
        appointment = await self.repository.cancel_by_external_id(external_id)
        if appointment is None:
            logger.warning("Cancellation for unknown booking %s ignored", external_id)
            return ReconcileResult(ReconcileAction.IGNORED, external_id)
        return ReconcileResult(ReconcileAction.CANCELLED, external_id, appointment.id)
