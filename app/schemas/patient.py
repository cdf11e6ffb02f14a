"""Pydantic schemas for Patients."""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from app.models.patient import Gender
from app.schemas.appointment import AppointmentOut
from app.schemas.common import CAMEL_CONFIG, IsoDatetime, UtcDatetime


class PatientCreate(BaseModel):
    """Schema for registering a new patient."""
    model_config = CAMEL_CONFIG

    name: str = Field(..., min_length=1, max_length=50)
    breed: str = Field(..., min_length=1, max_length=50)
    birth_date: IsoDatetime
    gender: Gender
    weight: Optional[float] = Field(None, ge=0.1, le=200)  # kg
    color: Optional[str] = Field(None, max_length=30)
    microchip_id: Optional[str] = Field(None, max_length=20)
    owner_name: str = Field(..., min_length=1, max_length=100)
    owner_phone: str = Field(..., min_length=8, max_length=25)
    owner_email: Optional[EmailStr] = None
    medical_notes: Optional[str] = Field(None, max_length=500)


class PatientUpdate(BaseModel):
    model_config = CAMEL_CONFIG

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    breed: Optional[str] = Field(None, min_length=1, max_length=50)
    birth_date: Optional[IsoDatetime] = None
    gender: Optional[Gender] = None
    weight: Optional[float] = Field(None, ge=0.1, le=200)
    color: Optional[str] = Field(None, max_length=30)
    microchip_id: Optional[str] = Field(None, max_length=20)
    owner_name: Optional[str] = Field(None, min_length=1, max_length=100)
    owner_phone: Optional[str] = Field(None, min_length=8, max_length=25)
    owner_email: Optional[EmailStr] = None
    medical_notes: Optional[str] = Field(None, max_length=500)


class PatientOut(BaseModel):
    model_config = CAMEL_CONFIG

    id: str
    name: str
    breed: str
    birth_date: UtcDatetime
    gender: Gender
    weight: Optional[float] = None
    color: Optional[str] = None
    microchip_id: Optional[str] = None
    owner_name: str
    owner_phone: str
    owner_email: Optional[str] = None
    medical_notes: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class PatientDetailOut(PatientOut):
    """Patient plus the appointments linked to it."""
    appointments: list[AppointmentOut] = []
