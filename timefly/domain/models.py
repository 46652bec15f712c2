from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

APPOINTMENT_STATUSES = [
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
]

# Statuses that keep a patient in the live queue
QUEUE_STATUSES = (STATUS_CONFIRMED, STATUS_PENDING, STATUS_IN_PROGRESS)

PRIORITY_NORMAL = "normal"
PRIORITY_URGENT = "urgent"
PRIORITY_EMERGENCY = "emergency"

PRIORITY_WEIGHTS = {
    PRIORITY_EMERGENCY: 3,
    PRIORITY_URGENT: 2,
    PRIORITY_NORMAL: 1,
}

BOOKED_BY_PATIENT = "patient"
BOOKED_BY_STAFF = "staff"


@dataclass
class WorkingHours:
    start: str
    end: str


@dataclass
class ScheduleOverride:
    """Per-date exception to a doctor's default weekly schedule."""

    available: bool
    custom_hours: Optional[WorkingHours] = None
    max_appointments: Optional[int] = None


@dataclass
class Doctor:
    id: str
    name: str
    specialty: str = ""
    available: bool = True
    buffer_time: Optional[int] = None
    max_appointments: Optional[int] = None
    consultation_duration: Optional[int] = None
    working_hours: Optional[WorkingHours] = None
    off_days: List[str] = field(default_factory=list)
    working_days: Optional[List[str]] = None
    available_dates: Optional[List[str]] = None
    unavailable_dates: List[str] = field(default_factory=list)
    schedule_settings: Dict[str, ScheduleOverride] = field(default_factory=dict)


@dataclass
class AvailabilityOverride:
    doctor_id: str
    date: str
    available: bool


@dataclass
class Appointment:
    id: str
    patient_name: str
    date: str
    time: str
    doctor_id: str
    status: str = STATUS_PENDING
    priority: str = PRIORITY_NORMAL
    doctor_name: str = ""
    age: Optional[int] = None
    condition: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    queue_number: Optional[int] = None
    booked_by: str = BOOKED_BY_PATIENT
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class TimeSlot:
    time: str
    available: bool
    booked: bool
    emergency: bool = False
    # Time written to the appointment when this slot is taken
    reserved_time: Optional[str] = None
    blocked: bool = False


@dataclass
class ResolvedSchedule:
    is_open: bool
    hours: Optional[WorkingHours]
    max_appointments: int
    source: str


@dataclass
class DoctorDay:
    doctor_id: str
    name: str
    available: bool
    booked: int
    max_appointments: int


@dataclass
class DaySchedule:
    date: str
    day_name: str
    booked: int
    total: int
    doctors: List[DoctorDay] = field(default_factory=list)


@dataclass
class QueueEntry:
    appointment: Appointment
    position: int
    estimated_wait_minutes: int
    is_currently_serving: bool = False


@dataclass
class WaitingListEntry:
    id: str
    patient_name: str
    preferred_doctor_id: str
    preferred_date: str
    priority: str = PRIORITY_NORMAL
    preferred_doctor_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    condition: str = ""
    added_at: Optional[datetime] = None
