"""Sesami booking webhook handlers.

Thin HTTP layer: signature check and parsing here, event handling in
app.services.booking_reconciler.
"""

import json
import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ValidationError
from app.schemas.webhook import WebhookEvent
from app.services.appointment_repository import AppointmentRepository
from app.services.booking_reconciler import BookingReconciler, ReconcileAction, ReconcileResult
from app.services.validation import validate_webhook_payload
from app.services.webhook_security import SIGNATURE_HEADER, verify_signature

router = APIRouter()
logger = logging.getLogger(__name__)

_MESSAGES = {
    ReconcileAction.CREATED: "Appointment created",
    ReconcileAction.DUPLICATE: "Booking already recorded; nothing to do",
    ReconcileAction.UPDATED: "Appointment updated",
    ReconcileAction.CANCELLED: "Appointment cancelled",
    ReconcileAction.IGNORED: "No matching appointment; nothing to do",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _response(result: ReconcileResult) -> dict:
    return {
        "success": True,
        "message": _MESSAGES[result.action],
        "action": result.action.value,
        "externalBookingId": result.external_booking_id,
        "appointmentId": result.appointment_id,
        "timestamp": _now_iso(),
    }


async def _reconcile(raw: object, db: AsyncSession) -> ReconcileResult:
    payload = validate_webhook_payload(raw)
    # No notifier: changes that came from Sesami are not echoed back to it
    reconciler = BookingReconciler(AppointmentRepository(db))
    return await reconciler.handle(payload)


@router.post("/bookings")
async def sesami_booking_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Receive appointment.created / .updated / .cancelled events from Sesami."""
    body = await request.body()
    verify_signature(body, request.headers.get(SIGNATURE_HEADER))

    try:
        raw = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError([{"field": "body", "reason": "Invalid JSON"}])

    if isinstance(raw, dict):
        booking = raw.get("booking") if isinstance(raw.get("booking"), dict) else {}
        logger.info("Sesami webhook: %s | booking=%s", raw.get("event"), booking.get("id"))

    return _response(await _reconcile(raw, db))


@router.get("/bookings")
async def sesami_webhook_info():
    """Describe the webhook so integrators can check it is reachable."""
    return {
        "message": "Sesami booking webhook endpoint",
        "method": "POST",
        "supportedEvents": [event.value for event in WebhookEvent],
        "signatureHeader": SIGNATURE_HEADER,
        "signatureRequired": bool(settings.SESAMI_WEBHOOK_SECRET),
        "timestamp": _now_iso(),
    }


def build_sample_booking(now: datetime | None = None) -> dict:
    """A realistic appointment.created payload, booked for tomorrow."""
    now = now or datetime.now(timezone.utc)
    starts_at = now + timedelta(days=1)
    ends_at = starts_at + timedelta(hours=1)
    return {
        "event": WebhookEvent.CREATED.value,
        "sent_at": now.isoformat(),
        "booking": {
            "id": f"test_booking_{int(now.timestamp() * 1000)}",
            "status": "confirmed",
            "service_id": "service_123",
            "service_title": "Dog Grooming and Health Check",
            "starts_at": starts_at.isoformat(),
            "ends_at": ends_at.isoformat(),
            "time_zone": "America/New_York",
            "resource_id": "vet_room_1",
            "resource_name": "Examination Room 1",
        },
        "customer": {
            "shopify_customer_id": "shopify_123456",
            "name": "Test Customer",
            "email": "test@example.com",
            "phone": "+1-555-TEST",
        },
        "metadata": {
            "notes": "First time customer - be gentle with the dog",
            "tags": "new-customer,grooming",
            "source": "sesami",
        },
    }


@router.post("/bookings/test")
async def send_test_booking(db: AsyncSession = Depends(get_db)):
    """Run a sample booking through the reconciler. Not available in production."""
    if settings.is_production:
        raise HTTPException(status_code=404, detail="Not Found")

    sample = build_sample_booking()
    logger.info("Running test booking %s", sample["booking"]["id"])
    response = _response(await _reconcile(sample, db))
    response["testBooking"] = sample
    return response
