# timefly/schemas/doctor.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional

__all__ = [
    "WorkingHoursSchema",
    "ScheduleOverrideSchema",
    "DoctorCreate",
    "DoctorResponse",
    "AvailabilityUpdate",
    "AvailabilityResponse",
    "BlockedSlotUpdate",
    "ResolvedScheduleResponse",
    "TimeSlotResponse",
    "DoctorDayResponse",
    "DayScheduleResponse",
]


class WorkingHoursSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: str  # h:mm AM/PM or HH:MM
    end: str


class ScheduleOverrideSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    available: bool = True
    custom_hours: Optional[WorkingHoursSchema] = None
    max_appointments: Optional[int] = Field(default=None, ge=0)


class DoctorBase(BaseModel):
    name: str = Field(min_length=1)
    specialty: str = ""
    available: bool = True
    buffer_time: Optional[int] = Field(default=None, ge=0)
    max_appointments: Optional[int] = Field(default=None, ge=0)
    consultation_duration: Optional[int] = Field(default=None, gt=0)
    working_hours: Optional[WorkingHoursSchema] = None
    off_days: List[str] = []
    working_days: Optional[List[str]] = None
    available_dates: Optional[List[str]] = None
    unavailable_dates: List[str] = []
    schedule_settings: Dict[str, ScheduleOverrideSchema] = {}


class DoctorCreate(DoctorBase):
    id: Optional[str] = None


class DoctorResponse(DoctorBase):
    model_config = ConfigDict(from_attributes=True)

    id: str


class AvailabilityUpdate(BaseModel):
    date: str  # YYYY-MM-DD
    available: bool


class AvailabilityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    doctor_id: str
    date: str
    available: bool


class BlockedSlotUpdate(BaseModel):
    date: str
    time: str
    blocked: bool = True


class ResolvedScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_open: bool
    hours: Optional[WorkingHoursSchema] = None
    max_appointments: int
    source: str


class TimeSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time: str
    available: bool
    booked: bool
    emergency: bool = False
    reserved_time: Optional[str] = None
    blocked: bool = False


class DoctorDayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    doctor_id: str
    name: str
    available: bool
    booked: int
    max_appointments: int


class DayScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str
    day_name: str
    booked: int
    total: int
    doctors: List[DoctorDayResponse] = []
