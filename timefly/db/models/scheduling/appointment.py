# timefly/db/models/scheduling/appointment.py
from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime, Index, text
from datetime import datetime, timezone
import uuid


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


_ACTIVE = text("status != 'cancelled'")

class AppointmentRecord(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one active appointment per doctor/date/time
        Index(
            "uq_appointments_active_slot",
            "doctor_id", "date", "time",
            unique=True,
            sqlite_where=_ACTIVE,
            postgresql_where=_ACTIVE,
        ),
        Index("uq_appointments_date_queue_number", "date", "queue_number", unique=True),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    doctor_id: str = Field(foreign_key="doctors.id", index=True)
    doctor_name: str = Field(default="")
    patient_name: str
    age: Optional[int] = Field(default=None)
    condition: str = Field(default="")
    date: str = Field(max_length=10, index=True)  # YYYY-MM-DD
    time: str = Field(max_length=8)  # h:mm AM/PM
    status: str = Field(default="pending")
    priority: str = Field(default="normal")
    email: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    queue_number: Optional[int] = Field(default=None)
    booked_by: str = Field(default="patient")
    cancellation_reason: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))

    # Relationships
    doctor: Optional["DoctorRecord"] = Relationship(back_populates="appointments")
