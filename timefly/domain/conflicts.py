import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Appointment, Doctor, PRIORITY_EMERGENCY, STATUS_CANCELLED
from .timeutils import format_12h, parse_time, same_time, sort_timestamp

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_TIME = 15


def is_active(appointment: Appointment) -> bool:
    return appointment.status != STATUS_CANCELLED


def _created_key(appointment: Appointment) -> Tuple[float, str]:
    return (sort_timestamp(appointment.created_at), appointment.id)


def slot_occupant(
    date: str,
    time: str,
    doctor_id: str,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> Optional[Appointment]:
    """The appointment holding (doctor, date, time), earliest-created first.

    More than one holder means the at-most-one invariant was broken
    upstream; the duplicate is logged and the earliest booking wins.
    """
    matches = [
        a for a in appointments
        if a.date == date
        and a.doctor_id == doctor_id
        and is_active(a)
        and (exclude_id is None or a.id != exclude_id)
        and same_time(a.time, time)
    ]
    if not matches:
        return None
    matches.sort(key=_created_key)
    if len(matches) > 1:
        logger.warning(
            f"Double booking for doctor {doctor_id} on {date} at {time}: "
            f"{[a.id for a in matches]} (keeping {matches[0].id})"
        )
    return matches[0]


def has_conflict(
    date: str,
    time: str,
    doctor_id: str,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> bool:
    return slot_occupant(date, time, doctor_id, appointments, exclude_id) is not None


def find_double_bookings(appointments: Iterable[Appointment]) -> List[List[Appointment]]:
    """Groups of active appointments sharing one (doctor, date, time) key."""
    groups: Dict[Tuple[str, str, object], List[Appointment]] = defaultdict(list)
    for a in appointments:
        if not is_active(a):
            continue
        minutes = parse_time(a.time)
        groups[(a.doctor_id, a.date, minutes if minutes is not None else a.time)].append(a)
    duplicates = []
    for key, items in groups.items():
        if len(items) > 1:
            items.sort(key=_created_key)
            logger.warning(f"Duplicate occupants for slot {key}: {[a.id for a in items]}")
            duplicates.append(items)
    return duplicates


def reserved_time(
    time: str,
    doctor: Doctor,
    priority: str,
    default_buffer_time: int = DEFAULT_BUFFER_TIME,
) -> Optional[str]:
    """Time actually written for a request at ``time``.

    Emergency requests reserve the buffer window in front of the
    displayed slot, so they are shifted back by the doctor's buffer.
    Returns None when ``time`` cannot be parsed.
    """
    minutes = parse_time(time)
    if minutes is None:
        return None
    if priority == PRIORITY_EMERGENCY:
        buffer_time = doctor.buffer_time if doctor.buffer_time is not None else default_buffer_time
        minutes = max(0, minutes - buffer_time)
    return format_12h(minutes)


def displayed_time(
    stored_time: str,
    doctor: Doctor,
    priority: str,
    default_buffer_time: int = DEFAULT_BUFFER_TIME,
) -> Optional[str]:
    """Slot a stored appointment was booked from; the inverse of :func:`reserved_time`."""
    minutes = parse_time(stored_time)
    if minutes is None:
        return None
    if priority == PRIORITY_EMERGENCY:
        buffer_time = doctor.buffer_time if doctor.buffer_time is not None else default_buffer_time
        minutes += buffer_time
    return format_12h(minutes)
