import calendar
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException

from ...config import Settings, get_settings
from ...domain.calendar import day_schedule, month_calendar
from ...domain.conflicts import find_double_bookings
from ...domain.models import (
    AvailabilityOverride,
    DaySchedule,
    Doctor,
    PRIORITY_EMERGENCY,
    PRIORITY_WEIGHTS,
    QueueEntry,
    ResolvedSchedule,
    TimeSlot,
)
from ...domain.queue import build_queue, rank
from ...domain.schedule import doctors_available_on, override_for, resolve
from ...domain.slots import SlotOptions, generate_slots
from ...domain.timeutils import parse_date, parse_time
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.doctors_repo import DoctorsRepository

logger = logging.getLogger(__name__)


def validate_date(value: str) -> str:
    if parse_date(value) is None:
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")
    return value


def validate_priority(value: str) -> str:
    if value not in PRIORITY_WEIGHTS:
        raise HTTPException(status_code=400, detail=f"Invalid priority. Must be one of: {list(PRIORITY_WEIGHTS)}")
    return value


def slot_options(
    settings: Settings,
    priority: str = "normal",
    exclude_appointment_id: Optional[str] = None,
    blocked_times: Optional[List[str]] = None,
    availability_override: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> SlotOptions:
    """Engine options for one query, filled from application settings."""
    lunch_start = parse_time(settings.LUNCH_START)
    lunch_end = parse_time(settings.LUNCH_END)
    options = SlotOptions(
        priority_is_emergency=priority == PRIORITY_EMERGENCY,
        exclude_appointment_id=exclude_appointment_id,
        now=now,
        clinic_timezone=settings.CLINIC_TIMEZONE,
        blocked_times=set(blocked_times or []),
        availability_override=availability_override,
        default_consultation_duration=settings.DEFAULT_CONSULTATION_DURATION,
        default_buffer_time=settings.DEFAULT_BUFFER_TIME,
        default_max_appointments=settings.DEFAULT_MAX_APPOINTMENTS,
    )
    if lunch_start is not None and lunch_end is not None:
        options.lunch_start = lunch_start
        options.lunch_end = lunch_end
    else:
        logger.warning(f"Ignoring unparseable lunch window {settings.LUNCH_START!r}-{settings.LUNCH_END!r}")
    return options


@dataclass
class QueueView:
    date: str
    entries: List[QueueEntry]
    currently_serving: Optional[QueueEntry] = None
    up_next: Optional[QueueEntry] = None


@dataclass
class SchedulingService:
    doctors: DoctorsRepository
    appointments: AppointmentsRepository
    settings: Settings = field(default_factory=get_settings)

    def _doctor(self, doctor_id: str) -> Doctor:
        doctor = self.doctors.get(doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    def _override(self, doctor_id: str, date: str) -> Optional[bool]:
        return override_for(self.doctors.list_overrides(date, date), doctor_id, date)

    def resolve_day(self, doctor_id: str, date: str) -> ResolvedSchedule:
        validate_date(date)
        doctor = self._doctor(doctor_id)
        return resolve(doctor, date, self._override(doctor_id, date), self.settings.DEFAULT_MAX_APPOINTMENTS)

    def slots(
        self,
        doctor_id: str,
        date: str,
        priority: str = "normal",
        exclude_appointment_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[TimeSlot]:
        validate_date(date)
        validate_priority(priority)
        doctor = self._doctor(doctor_id)
        options = slot_options(
            self.settings,
            priority=priority,
            exclude_appointment_id=exclude_appointment_id,
            blocked_times=self.doctors.list_blocked_times(doctor_id, date),
            availability_override=self._override(doctor_id, date),
            now=now,
        )
        return generate_slots(doctor, date, self.appointments.list_for_date(date, doctor_id), options)

    def doctors_for_date(self, date: str) -> List[Doctor]:
        validate_date(date)
        return doctors_available_on(date, self.doctors.list_all(), self.doctors.list_overrides(date, date))

    def day(self, date: str) -> DaySchedule:
        validate_date(date)
        return day_schedule(
            date,
            self.doctors.list_all(),
            self.appointments.list_for_date(date),
            self.doctors.list_overrides(date, date),
            self.settings.DEFAULT_MAX_APPOINTMENTS,
        )

    def calendar(self, year: int, month: int) -> List[DaySchedule]:
        if not 1 <= month <= 12:
            raise HTTPException(status_code=400, detail="Month must be between 1 and 12")
        _, last_day = calendar.monthrange(year, month)
        date_from = f"{year:04d}-{month:02d}-01"
        date_to = f"{year:04d}-{month:02d}-{last_day:02d}"
        return month_calendar(
            year,
            month,
            self.doctors.list_all(),
            self.appointments.list_between(date_from, date_to),
            self.doctors.list_overrides(date_from, date_to),
            self.settings.DEFAULT_MAX_APPOINTMENTS,
        )

    def set_availability(self, doctor_id: str, date: str, available: bool) -> AvailabilityOverride:
        validate_date(date)
        self._doctor(doctor_id)
        override = self.doctors.set_override(doctor_id, date, available)
        logger.info(f"Doctor {doctor_id} marked {'available' if available else 'unavailable'} for {date}")
        return override

    def set_slot_blocked(self, doctor_id: str, date: str, time: str, blocked: bool) -> None:
        validate_date(date)
        if parse_time(time) is None:
            raise HTTPException(status_code=400, detail="Invalid time format. Use h:mm AM/PM or HH:MM")
        self._doctor(doctor_id)
        self.doctors.set_blocked(doctor_id, date, time, blocked)

    def queue(self, date: str, doctor_id: Optional[str] = None) -> QueueView:
        validate_date(date)
        snapshot = self.appointments.list_for_date(date, doctor_id)
        find_double_bookings(snapshot)
        entries = build_queue(rank(snapshot, date), self.settings.QUEUE_MINUTES_PER_PATIENT)
        serving = next((e for e in entries if e.is_currently_serving), None)
        following = next((e for e in entries if e is not serving), None)
        return QueueView(date=date, entries=entries, currently_serving=serving, up_next=following)

    def list_doctors(self) -> List[Doctor]:
        return self.doctors.list_all()

    def get_doctor(self, doctor_id: str) -> Doctor:
        return self._doctor(doctor_id)

    def _check_doctor(self, doctor: Doctor) -> None:
        hours = doctor.working_hours
        if hours and (parse_time(hours.start) is None or parse_time(hours.end) is None):
            raise HTTPException(status_code=400, detail="Invalid working hours. Use h:mm AM/PM or HH:MM")
        for day, override in doctor.schedule_settings.items():
            validate_date(day)
            custom = override.custom_hours
            if custom and (parse_time(custom.start) is None or parse_time(custom.end) is None):
                raise HTTPException(status_code=400, detail=f"Invalid custom hours for {day}")

    def create_doctor(self, doctor: Doctor) -> Doctor:
        self._check_doctor(doctor)
        if not doctor.id:
            doctor.id = str(uuid.uuid4())
        elif self.doctors.get(doctor.id):
            raise HTTPException(status_code=409, detail="Doctor already exists")
        created = self.doctors.create(doctor)
        logger.info(f"Doctor {created.id} created")
        return created

    def update_doctor(self, doctor: Doctor) -> Doctor:
        self._check_doctor(doctor)
        updated = self.doctors.update(doctor)
        if not updated:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return updated
