# timefly/db/models/scheduling/waiting_list.py
from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from datetime import datetime, timezone
import uuid


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WaitingListRecord(SQLModel, table=True):
    __tablename__ = "waiting_list"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    patient_name: str
    email: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    age: Optional[int] = Field(default=None)
    condition: str = Field(default="")
    preferred_doctor_id: str = Field(foreign_key="doctors.id", index=True)
    preferred_doctor_name: str = Field(default="")
    preferred_date: str = Field(max_length=10, index=True)
    priority: str = Field(default="normal")
    priority_weight: int = Field(default=1)
    added_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))
