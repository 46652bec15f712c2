# Scheduling engine: pure functions over doctor/appointment snapshots
from .models import (
    Appointment,
    AvailabilityOverride,
    DaySchedule,
    Doctor,
    DoctorDay,
    QueueEntry,
    ResolvedSchedule,
    ScheduleOverride,
    TimeSlot,
    WaitingListEntry,
    WorkingHours,
)
from .schedule import resolve, doctors_available_on
from .slots import SlotOptions, generate_slots
from .conflicts import has_conflict, reserved_time, find_double_bookings
from .queue import rank, currently_serving, up_next, next_queue_number, build_queue
from .calendar import day_schedule, month_calendar, is_daily_limit_reached

__all__ = [
    "Appointment",
    "AvailabilityOverride",
    "DaySchedule",
    "Doctor",
    "DoctorDay",
    "QueueEntry",
    "ResolvedSchedule",
    "ScheduleOverride",
    "TimeSlot",
    "WaitingListEntry",
    "WorkingHours",
    "resolve",
    "doctors_available_on",
    "SlotOptions",
    "generate_slots",
    "has_conflict",
    "reserved_time",
    "find_double_bookings",
    "rank",
    "currently_serving",
    "up_next",
    "next_queue_number",
    "build_queue",
    "day_schedule",
    "month_calendar",
    "is_daily_limit_reached",
]
