import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Set

from .conflicts import DEFAULT_BUFFER_TIME, has_conflict, reserved_time
from .models import Appointment, Doctor, PRIORITY_EMERGENCY, PRIORITY_NORMAL, TimeSlot
from .schedule import DEFAULT_MAX_APPOINTMENTS, resolve
from .timeutils import clinic_now, format_12h, parse_time

logger = logging.getLogger(__name__)

DEFAULT_CONSULTATION_DURATION = 15
DEFAULT_CLINIC_TIMEZONE = "Asia/Manila"
LUNCH_START = 12 * 60
LUNCH_END = 13 * 60


@dataclass
class SlotOptions:
    priority_is_emergency: bool = False
    exclude_appointment_id: Optional[str] = None
    # Current instant; converted to the clinic timezone before use
    now: Optional[datetime] = None
    clinic_timezone: str = DEFAULT_CLINIC_TIMEZONE
    lunch_start: int = LUNCH_START
    lunch_end: int = LUNCH_END
    # Staff-blocked times for this doctor/date, any parseable format
    blocked_times: Set[str] = field(default_factory=set)
    availability_override: Optional[bool] = None
    default_consultation_duration: int = DEFAULT_CONSULTATION_DURATION
    default_buffer_time: int = DEFAULT_BUFFER_TIME
    default_max_appointments: int = DEFAULT_MAX_APPOINTMENTS

    @property
    def priority(self) -> str:
        return PRIORITY_EMERGENCY if self.priority_is_emergency else PRIORITY_NORMAL


def _candidate_times(start: int, end: int, consultation: int, buffer_time: int) -> List[tuple]:
    """(minute, is_emergency) pairs in ascending order.

    The last regular slot starts at ``end - step``: 4:30 PM for a 9-5 day on
    the default 30-minute step. The 4:45 PM candidate after it is emergency-only.
    """
    step = consultation + buffer_time
    candidates = []
    t = start
    while t + step <= end:
        candidates.append((t, False))
        if buffer_time > 0:
            candidates.append((t + consultation, True))
        t += step
    return candidates


def generate_slots(
    doctor: Doctor,
    date: str,
    existing_appointments: Iterable[Appointment],
    options: Optional[SlotOptions] = None,
) -> List[TimeSlot]:
    """Bookable time slots for ``doctor`` on ``date``.

    Regular slots sit on a ``consultation + buffer`` grid starting at the
    beginning of the working window. When the doctor has a buffer, an
    emergency slot is interleaved right after each consultation; it is only
    ever offered as available to emergency bookings.
    """
    options = options or SlotOptions()
    schedule = resolve(doctor, date, options.availability_override, options.default_max_appointments)
    if not schedule.is_open:
        return []
    if schedule.hours is None:
        logger.warning(f"Doctor {doctor.id} has no working hours configured")
        return []

    start = parse_time(schedule.hours.start)
    end = parse_time(schedule.hours.end)
    if start is None or end is None or end <= start:
        logger.warning(
            f"Doctor {doctor.id} has unusable working hours "
            f"{schedule.hours.start!r}-{schedule.hours.end!r} on {date}"
        )
        return []

    consultation = doctor.consultation_duration
    if consultation is None:
        consultation = options.default_consultation_duration
    buffer_time = doctor.buffer_time if doctor.buffer_time is not None else options.default_buffer_time
    buffer_time = max(0, buffer_time)
    if consultation <= 0:
        logger.warning(f"Doctor {doctor.id} has a non-positive consultation duration")
        return []

    now = clinic_now(options.clinic_timezone, options.now)
    cutoff = None
    if date == now.strftime("%Y-%m-%d"):
        cutoff = now.hour * 60 + now.minute

    blocked = {parse_time(t) for t in options.blocked_times}
    appointments = [a for a in existing_appointments if a.doctor_id == doctor.id and a.date == date]
    priority = options.priority

    slots = []
    for minutes, is_emergency in _candidate_times(start, end, consultation, buffer_time):
        if options.lunch_start <= minutes < options.lunch_end:
            continue
        if cutoff is not None and minutes <= cutoff:
            continue

        time12 = format_12h(minutes)
        reserved = reserved_time(time12, doctor, priority, options.default_buffer_time)
        booked = has_conflict(date, time12, doctor.id, appointments, options.exclude_appointment_id)
        if not booked and reserved != time12:
            booked = has_conflict(date, reserved, doctor.id, appointments, options.exclude_appointment_id)
        is_blocked = minutes in blocked
        available = not booked and not is_blocked
        if is_emergency:
            available = available and options.priority_is_emergency

        slots.append(TimeSlot(
            time=time12,
            available=available,
            booked=booked,
            emergency=is_emergency,
            reserved_time=reserved,
            blocked=is_blocked,
        ))

    logger.debug(f"Generated {len(slots)} slots for doctor {doctor.id} on {date}")
    return slots


def find_slot(slots: Iterable[TimeSlot], time: str) -> Optional[TimeSlot]:
    minutes = parse_time(time)
    if minutes is None:
        return None
    for slot in slots:
        if parse_time(slot.time) == minutes:
            return slot
    return None
