"""Pydantic schemas for Appointments.

Wire names are camelCase (customerName, startTime, ...); Python attribute
names match the snake_case columns.
"""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from app.models.appointment import AppointmentStatus
from app.schemas.common import CAMEL_CONFIG, IsoDatetime, TagList, UtcDatetime

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480


class AppointmentCreate(BaseModel):
    """Schema for creating an appointment."""
    model_config = CAMEL_CONFIG

    patient_id: Optional[str] = Field(None, max_length=36)  # absent for external bookings
    customer_name: str = Field(..., min_length=1, max_length=100)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(None, min_length=8, max_length=25)
    service_name: str = Field(..., min_length=1, max_length=100)
    staff_member: Optional[str] = Field(None, max_length=50)
    start_time: IsoDatetime
    end_time: IsoDatetime
    # Derived from endTime - startTime when omitted
    duration_minutes: Optional[int] = Field(None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    status: AppointmentStatus
    notes: Optional[str] = Field(None, max_length=500)


class AppointmentUpdate(BaseModel):
    """Schema for a partial update. Every field optional, but not all absent."""
    model_config = CAMEL_CONFIG

    patient_id: Optional[str] = Field(None, max_length=36)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(None, min_length=8, max_length=25)
    service_name: Optional[str] = Field(None, min_length=1, max_length=100)
    staff_member: Optional[str] = Field(None, max_length=50)
    start_time: Optional[IsoDatetime] = None
    end_time: Optional[IsoDatetime] = None
    duration_minutes: Optional[int] = Field(None, ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = Field(None, max_length=500)


class AppointmentOut(BaseModel):
    """Schema for returning appointment details."""
    model_config = CAMEL_CONFIG

    id: str
    external_booking_id: Optional[str] = None
    patient_id: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    service_name: str
    staff_member: Optional[str] = None
    start_time: UtcDatetime
    end_time: UtcDatetime
    duration_minutes: int
    status: AppointmentStatus
    notes: Optional[str] = None
    external_customer_id: Optional[str] = None
    service_id: Optional[str] = None
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    time_zone: Optional[str] = None
    tags: Optional[TagList] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class AppointmentMutationOut(BaseModel):
    """Confirmation returned by PUT / DELETE."""
    model_config = CAMEL_CONFIG

    success: bool = True
    message: str
    appointment: Optional[AppointmentOut] = None
