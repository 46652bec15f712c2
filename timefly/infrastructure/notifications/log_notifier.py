import json
import logging
from datetime import datetime, timezone
from typing import Dict, Tuple

from ...application.ports.notifier import Notifier
from ...domain.models import Appointment

TEMPLATES: Dict[str, Tuple[str, str]] = {
    "now_serving": (
        "Your Turn - Now Being Served",
        "Hello {name}, it's now your turn! Please proceed to {doctor}'s office. Queue #{queue_number}",
    ),
    "appointment_completed": (
        "Appointment Completed",
        "Hello {name}, your appointment with {doctor} has been completed. Thank you for visiting us.",
    ),
    "appointment_confirmed": (
        "Appointment Confirmed",
        "Hello {name}, your appointment with {doctor} on {date} at {time} has been confirmed. Queue #{queue_number}",
    ),
    "appointment_cancelled": (
        "Appointment Cancelled",
        "Hello {name}, your appointment with {doctor} on {date} at {time} has been cancelled.",
    ),
    "appointment_pending": (
        "Appointment Pending",
        "Hello {name}, your appointment with {doctor} on {date} at {time} is pending confirmation.",
    ),
    "appointment_created": (
        "New Appointment Booked",
        "Hello {name}, your appointment with {doctor} has been booked for {date} at {time}. Queue #{queue_number}",
    ),
    "appointment_updated": (
        "Appointment Updated",
        "Hello {name}, your appointment with {doctor} has been updated. New time: {date} at {time}",
    ),
    "waiting_list_assigned": (
        "Slot Available - Appointment Booked",
        "Hello {name}, a slot opened up with {doctor}. You are booked for {date} at {time}. Queue #{queue_number}",
    ),
    "reminder": (
        "Appointment Reminder",
        "Hello {name}, this is a reminder for your appointment with {doctor} on {date} at {time}. Queue #{queue_number}",
    ),
}

DEFAULT_TEMPLATE = ("Appointment Update", "Hello {name}, there's an update regarding your appointment.")


def render(event: str, appointment: Appointment) -> Tuple[str, str]:
    """Return ``(subject, message)`` for a notification event."""
    subject, body = TEMPLATES.get(event, DEFAULT_TEMPLATE)
    return subject, body.format(
        name=appointment.patient_name,
        doctor=appointment.doctor_name or "your doctor",
        date=appointment.date,
        time=appointment.time,
        queue_number=appointment.queue_number if appointment.queue_number is not None else "-",
    )


class LoggingNotifier(Notifier):
    """Writes rendered notifications to the log instead of sending them."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def notify(self, event: str, appointment: Appointment) -> None:
        channels = [c for c, v in (("email", appointment.email), ("sms", appointment.phone)) if v]
        if not channels:
            self._logger.info(f"No contact details for appointment {appointment.id}; skipping {event}")
            return
        subject, message = render(event, appointment)
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "appointment_id": appointment.id,
            "channels": channels,
            "subject": subject,
            "message": message,
        }
        self._logger.info(f"NOTIFY: {json.dumps(entry)}")
