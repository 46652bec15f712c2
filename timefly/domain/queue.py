import math
from typing import Iterable, List, Optional

from .models import Appointment, PRIORITY_WEIGHTS, QUEUE_STATUSES, QueueEntry
from .timeutils import parse_time, sort_timestamp

DEFAULT_MINUTES_PER_PATIENT = 30


def priority_weight(priority: Optional[str]) -> int:
    return PRIORITY_WEIGHTS.get(priority or "", 1)


def _sort_key(appointment: Appointment):
    queue_number = appointment.queue_number if appointment.queue_number is not None else math.inf
    minutes = parse_time(appointment.time)
    return (
        -priority_weight(appointment.priority),
        queue_number,
        minutes if minutes is not None else math.inf,
        sort_timestamp(appointment.created_at),
        appointment.id,
    )


def rank(appointments: Iterable[Appointment], date: str) -> List[Appointment]:
    """Live queue for ``date``: priority first, then queue number, then time."""
    todays = [a for a in appointments if a.date == date and a.status in QUEUE_STATUSES]
    return sorted(todays, key=_sort_key)


def currently_serving(ranked: List[Appointment]) -> Optional[Appointment]:
    return next((a for a in ranked if a.queue_number == 1), None)


def up_next(ranked: List[Appointment]) -> Optional[Appointment]:
    serving = currently_serving(ranked)
    return next((a for a in ranked if a is not serving), None)


def next_queue_number(appointments: Iterable[Appointment], date: str, last_issued: int = 0) -> int:
    """Next queue number for ``date``.

    Cancelled appointments still count, and ``last_issued`` is the highest
    number ever handed out for the date, so a number that left the date
    with a rescheduled appointment is not handed out again.
    """
    numbers = [a.queue_number for a in appointments if a.date == date and a.queue_number is not None]
    return max(max(numbers, default=0), last_issued) + 1


def build_queue(
    ranked: List[Appointment],
    minutes_per_patient: int = DEFAULT_MINUTES_PER_PATIENT,
) -> List[QueueEntry]:
    serving = currently_serving(ranked)
    return [
        QueueEntry(
            appointment=a,
            position=index + 1,
            estimated_wait_minutes=index * minutes_per_patient,
            is_currently_serving=a is serving,
        )
        for index, a in enumerate(ranked)
    ]
