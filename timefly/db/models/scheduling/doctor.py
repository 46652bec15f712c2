# timefly/db/models/scheduling/doctor.py
from typing import Optional, List, Dict, Any
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime, timezone
import uuid


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DoctorRecord(SQLModel, table=True):
    __tablename__ = "doctors"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(max_length=100)
    specialty: str = Field(default="", max_length=100)
    available: bool = Field(default=True)
    buffer_time: Optional[int] = Field(default=None)
    max_appointments: Optional[int] = Field(default=None)
    consultation_duration: Optional[int] = Field(default=None)
    working_start: Optional[str] = Field(default=None, max_length=10)
    working_end: Optional[str] = Field(default=None, max_length=10)
    off_days: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    working_days: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    available_dates: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    unavailable_dates: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    # {"2025-12-25": {"available": false, "custom_hours": {"start": ..., "end": ...}, "max_appointments": 4}}
    schedule_settings: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))

    # Relationships
    appointments: List["AppointmentRecord"] = Relationship(back_populates="doctor")
