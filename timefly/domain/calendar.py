import calendar as _calendar
from typing import Iterable, List, Optional

from .conflicts import is_active
from .models import Appointment, AvailabilityOverride, DaySchedule, Doctor, DoctorDay
from .schedule import DEFAULT_MAX_APPOINTMENTS, override_for, resolve
from .timeutils import parse_date


def day_schedule(
    date: str,
    doctors: Iterable[Doctor],
    appointments: Iterable[Appointment],
    overrides: Optional[Iterable[AvailabilityOverride]] = None,
    default_max_appointments: int = DEFAULT_MAX_APPOINTMENTS,
) -> DaySchedule:
    """Calendar cell for one day: bookings against the capacity of open doctors."""
    overrides = list(overrides or [])
    active = [a for a in appointments if a.date == date and is_active(a)]
    parsed = parse_date(date)

    breakdown = []
    total = 0
    for doctor in doctors:
        schedule = resolve(doctor, date, override_for(overrides, doctor.id, date), default_max_appointments)
        booked = sum(1 for a in active if a.doctor_id == doctor.id)
        breakdown.append(DoctorDay(
            doctor_id=doctor.id,
            name=doctor.name,
            available=schedule.is_open,
            booked=booked,
            max_appointments=schedule.max_appointments if schedule.is_open else 0,
        ))
        if schedule.is_open:
            total += schedule.max_appointments

    return DaySchedule(
        date=date,
        day_name=parsed.strftime("%a") if parsed else "",
        booked=len(active),
        total=total,
        doctors=breakdown,
    )


def month_calendar(
    year: int,
    month: int,
    doctors: Iterable[Doctor],
    appointments: Iterable[Appointment],
    overrides: Optional[Iterable[AvailabilityOverride]] = None,
    default_max_appointments: int = DEFAULT_MAX_APPOINTMENTS,
) -> List[DaySchedule]:
    doctors = list(doctors)
    appointments = list(appointments)
    overrides = list(overrides or [])
    _, days_in_month = _calendar.monthrange(year, month)
    return [
        day_schedule(f"{year:04d}-{month:02d}-{day:02d}", doctors, appointments, overrides, default_max_appointments)
        for day in range(1, days_in_month + 1)
    ]


def is_daily_limit_reached(
    doctor: Doctor,
    date: str,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
    default_max_appointments: int = DEFAULT_MAX_APPOINTMENTS,
) -> bool:
    schedule = resolve(doctor, date, default_max_appointments=default_max_appointments)
    booked = sum(
        1 for a in appointments
        if a.doctor_id == doctor.id and a.date == date and is_active(a)
        and (exclude_id is None or a.id != exclude_id)
    )
    return booked >= schedule.max_appointments
