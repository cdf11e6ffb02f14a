"""Pydantic schemas for the Sesami booking webhook.

Only the current payload shape is accepted:

    {"event": "appointment.created", "sent_at": ..., "booking": {...},
     "customer": {...}, "metadata": {...}}

The earlier ``event_type`` / ``booking.appointment_time`` + ``service.duration``
shape is deprecated and rejected during validation.
"""

import enum
from typing import Optional
from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator
from app.models.appointment import AppointmentStatus
from app.schemas.common import IsoDatetime


class WebhookEvent(str, enum.Enum):
    CREATED = "appointment.created"
    UPDATED = "appointment.updated"
    CANCELLED = "appointment.cancelled"


# Sesami status strings that are not already one of ours
EXTERNAL_STATUS_MAP: dict[str, AppointmentStatus] = {
    "canceled": AppointmentStatus.CANCELLED,
    "booked": AppointmentStatus.CONFIRMED,
    "scheduled": AppointmentStatus.CONFIRMED,
    "accepted": AppointmentStatus.CONFIRMED,
    "requested": AppointmentStatus.PENDING,
    "tentative": AppointmentStatus.PENDING,
    "done": AppointmentStatus.COMPLETED,
    "fulfilled": AppointmentStatus.COMPLETED,
    "no-show": AppointmentStatus.COMPLETED,
    "started": AppointmentStatus.IN_PROGRESS,
    "in_progress": AppointmentStatus.IN_PROGRESS,
}


def map_external_status(raw: str) -> AppointmentStatus:
    key = raw.strip().lower()
    try:
        return AppointmentStatus(key)
    except ValueError:
        pass
    if key in EXTERNAL_STATUS_MAP:
        return EXTERNAL_STATUS_MAP[key]
    raise ValueError(f"unsupported booking status '{raw}'")


class WebhookBooking(BaseModel):
    id: str = Field(..., min_length=1, max_length=255)
    status: AppointmentStatus
    service_id: str = Field(..., min_length=1, max_length=255)
    service_title: str = Field(..., min_length=1, max_length=255)
    starts_at: IsoDatetime
    ends_at: IsoDatetime
    time_zone: str = Field(..., min_length=1, max_length=64)
    resource_id: Optional[str] = Field(None, max_length=255)
    resource_name: Optional[str] = Field(None, max_length=255)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if not isinstance(v, str):
            raise ValueError("status must be a string")
        return map_external_status(v)


class WebhookCustomer(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=25)
    external_customer_id: Optional[str] = Field(
        None,
        max_length=255,
        validation_alias=AliasChoices("external_customer_id", "shopify_customer_id"),
    )


class WebhookMetadata(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)
    tags: Optional[str] = Field(None, max_length=500)  # "new-customer,grooming"
    source: str = Field(..., min_length=1, max_length=50)


class BookingWebhookPayload(BaseModel):
    """One inbound Sesami booking event."""
    event: WebhookEvent
    sent_at: IsoDatetime
    booking: WebhookBooking
    customer: WebhookCustomer
    metadata: WebhookMetadata
