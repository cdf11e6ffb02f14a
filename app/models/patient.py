"""Patient (animal) record with owner contact details."""

from sqlalchemy import Column, String, DateTime, Float, Text
import uuid
import enum
from app.core.database import Base
from app.models.appointment import utcnow


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(50), nullable=False)
    breed = Column(String(50), nullable=False)
    birth_date = Column(DateTime, nullable=False)
    gender = Column(String(10), nullable=False)
    weight = Column(Float, nullable=True)  # kg
    color = Column(String(30), nullable=True)
    microchip_id = Column(String(20), nullable=True)

    owner_name = Column(String(100), nullable=False)
    owner_phone = Column(String(25), nullable=False)
    owner_email = Column(String(255), nullable=True)
    medical_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
