# timefly/db/models/scheduling/availability.py
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, UniqueConstraint
from datetime import datetime, timezone
import uuid


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DoctorAvailabilityRecord(SQLModel, table=True):
    __tablename__ = "doctor_availability"
    # Stored as "<doctor_id>_<date>" so a toggle overwrites the previous value
    id: str = Field(primary_key=True)
    doctor_id: str = Field(foreign_key="doctors.id", index=True)
    date: str = Field(max_length=10, index=True)
    available: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))

class BlockedSlotRecord(SQLModel, table=True):
    __tablename__ = "blocked_slots"
    __table_args__ = (UniqueConstraint("doctor_id", "date", "time", name="uq_blocked_slots_slot"),)
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    doctor_id: str = Field(foreign_key="doctors.id", index=True)
    date: str = Field(max_length=10)
    time: str = Field(max_length=8)
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))
