# timefly/schemas/appointment.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

__all__ = [
    "AppointmentCreate",
    "AppointmentReschedule",
    "AppointmentCancel",
    "StatusUpdate",
    "AppointmentResponse",
    "WaitingListResponse",
    "BookingResponse",
    "CancellationResponse",
    "QueueEntryResponse",
    "QueueResponse",
]


class AppointmentCreate(BaseModel):
    doctor_id: str
    patient_name: str = Field(min_length=1)
    date: str  # YYYY-MM-DD
    time: str  # h:mm AM/PM
    priority: str = "normal"
    age: Optional[int] = Field(default=None, ge=0, le=120)
    condition: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    booked_by: str = "patient"
    join_waiting_list: bool = False


class AppointmentReschedule(BaseModel):
    date: str
    time: str
    priority: Optional[str] = None


class AppointmentCancel(BaseModel):
    reason: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_name: str
    doctor_id: str
    doctor_name: str = ""
    date: str
    time: str
    status: str
    priority: str
    age: Optional[int] = None
    condition: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    queue_number: Optional[int] = None
    booked_by: str
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WaitingListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_name: str
    preferred_doctor_id: str
    preferred_doctor_name: str = ""
    preferred_date: str
    priority: str
    added_at: Optional[datetime] = None


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appointment: Optional[AppointmentResponse] = None
    waiting_list_entry: Optional[WaitingListResponse] = None


class CancellationResponse(BaseModel):
    cancelled: AppointmentResponse
    promoted: Optional[AppointmentResponse] = None


class QueueEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appointment: AppointmentResponse
    position: int
    estimated_wait_minutes: int
    is_currently_serving: bool = False


class QueueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str
    entries: List[QueueEntryResponse] = []
    currently_serving: Optional[QueueEntryResponse] = None
    up_next: Optional[QueueEntryResponse] = None
