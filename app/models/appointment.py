"""Appointment model shared by internal scheduling and Sesami bookings."""

from sqlalchemy import Column, String, DateTime, Integer, Text, Index
import uuid
from datetime import datetime, timezone
import enum
from app.core.database import Base


def utcnow() -> datetime:
    """Current time as naive UTC, the storage convention for every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AppointmentStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    IN_PROGRESS = "in-progress"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Idempotency key for webhook reconciliation; NULL for internally scheduled rows
    external_booking_id = Column(String(255), nullable=True)
    patient_id = Column(String(36), nullable=True, index=True)

    # Contact snapshot captured at booking time
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(25), nullable=True)

    service_name = Column(String(255), nullable=False)
    staff_member = Column(String(100), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=AppointmentStatus.CONFIRMED.value)
    notes = Column(Text, nullable=True)

    # Sesami booking fields (added by later schema revisions)
    external_customer_id = Column(String(255), nullable=True)
    service_id = Column(String(255), nullable=True)
    resource_id = Column(String(255), nullable=True)
    resource_name = Column(String(255), nullable=True)
    time_zone = Column(String(64), nullable=True)
    tags = Column(Text, nullable=True)  # comma-separated

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_appointments_time_range", "start_time", "end_time"),
        Index("uq_appointments_external_booking_id", "external_booking_id", unique=True),
    )

    def __repr__(self) -> str:
        return f"<Appointment {self.id} {self.start_time} {self.status}>"
