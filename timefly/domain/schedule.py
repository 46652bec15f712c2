import logging
from typing import Iterable, List, Optional

from .models import AvailabilityOverride, Doctor, ResolvedSchedule
from .timeutils import weekday_name

logger = logging.getLogger(__name__)

DEFAULT_MAX_APPOINTMENTS = 8


def resolve(
    doctor: Doctor,
    date: str,
    availability_override: Optional[bool] = None,
    default_max_appointments: int = DEFAULT_MAX_APPOINTMENTS,
) -> ResolvedSchedule:
    """Effective working window, capacity and open state for one doctor on one date.

    Precedence: global ``available`` switch, then the per-date
    ``schedule_settings`` entry, then the weekly fallback chain
    (off days, working days, allowed dates, denied dates). A ``False``
    ``availability_override`` closes the day on top of all of that; it
    never opens one.
    """
    default_max = doctor.max_appointments if doctor.max_appointments is not None else default_max_appointments

    if not doctor.available:
        return ResolvedSchedule(False, doctor.working_hours, default_max, "disabled")

    override = (doctor.schedule_settings or {}).get(date)
    if override is not None:
        is_open = bool(override.available)
        hours = override.custom_hours or doctor.working_hours
        max_appointments = override.max_appointments if override.max_appointments is not None else default_max
        source = "schedule_settings"
    else:
        is_off_day = date in (doctor.off_days or [])
        is_working_day = doctor.working_days is None or weekday_name(date) in doctor.working_days
        is_allowed = doctor.available_dates is None or date in doctor.available_dates
        is_denied = date in (doctor.unavailable_dates or [])
        is_open = not is_off_day and is_working_day and is_allowed and not is_denied
        hours = doctor.working_hours
        max_appointments = default_max
        source = "default"

    if availability_override is False and is_open:
        is_open = False
        source = "availability_override"

    return ResolvedSchedule(is_open, hours, max_appointments, source)


def override_for(
    overrides: Optional[Iterable[AvailabilityOverride]], doctor_id: str, date: str
) -> Optional[bool]:
    if not overrides:
        return None
    for item in overrides:
        if item.doctor_id == doctor_id and item.date == date:
            return item.available
    return None


def doctors_available_on(
    date: str,
    doctors: Iterable[Doctor],
    overrides: Optional[Iterable[AvailabilityOverride]] = None,
) -> List[Doctor]:
    """Doctors a patient may pick for ``date``."""
    overrides = list(overrides or [])
    result = []
    for doctor in doctors:
        schedule = resolve(doctor, date, override_for(overrides, doctor.id, date))
        if schedule.is_open:
            result.append(doctor)
    return result
