import json
import logging

from timefly.domain.models import Appointment
from timefly.infrastructure.notifications.log_notifier import LoggingNotifier, render


def make_appointment(**kwargs):
    defaults = dict(
        id="a1",
        patient_name="Ana",
        date="2030-06-11",
        time="10:00 AM",
        doctor_id="d1",
        doctor_name="Dr. Santos",
        queue_number=4,
        email="ana@example.com",
    )
    defaults.update(kwargs)
    return Appointment(**defaults)


def test_render_templates():
    subject, message = render("now_serving", make_appointment())
    assert subject == "Your Turn - Now Being Served"
    assert message == "Hello Ana, it's now your turn! Please proceed to Dr. Santos's office. Queue #4"

    subject, message = render("appointment_cancelled", make_appointment())
    assert "on 2030-06-11 at 10:00 AM has been cancelled" in message


def test_render_unknown_event_uses_generic_text():
    subject, message = render("something_else", make_appointment())
    assert subject == "Appointment Update"
    assert message == "Hello Ana, there's an update regarding your appointment."


def test_logging_notifier_logs_rendered_message(caplog):
    caplog.set_level(logging.INFO, logger="timefly.infrastructure.notifications.log_notifier")
    LoggingNotifier().notify("reminder", make_appointment(phone="+639170000000"))

    line = next(r.getMessage() for r in caplog.records if r.getMessage().startswith("NOTIFY: "))
    entry = json.loads(line[len("NOTIFY: "):])
    assert entry["event"] == "reminder"
    assert entry["channels"] == ["email", "sms"]
    assert entry["subject"] == "Appointment Reminder"


def test_logging_notifier_skips_without_contact(caplog):
    caplog.set_level(logging.INFO, logger="timefly.infrastructure.notifications.log_notifier")
    LoggingNotifier().notify("reminder", make_appointment(email=None))
    assert not any(r.getMessage().startswith("NOTIFY: ") for r in caplog.records)
