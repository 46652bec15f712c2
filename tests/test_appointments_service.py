from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from timefly.application.services.appointments_service import AppointmentsService
from timefly.config import Settings
from timefly.domain.conflicts import has_conflict
from timefly.domain.models import Doctor, WorkingHours
from timefly.domain.queue import next_queue_number, priority_weight
from timefly.exceptions import SlotTakenError

DATE = "2030-06-11"
NOW = datetime(2030, 6, 10, 8, 0, tzinfo=timezone(timedelta(hours=8)))


class FakeDoctorsRepo:
    def __init__(self, *doctors):
        self.doctors = {d.id: d for d in doctors}
        self.overrides = []
        self.blocked = {}

    def get(self, doctor_id):
        return self.doctors.get(doctor_id)

    def list_all(self):
        return list(self.doctors.values())

    def list_overrides(self, date_from=None, date_to=None):
        return list(self.overrides)

    def list_blocked_times(self, doctor_id, date):
        return list(self.blocked.get((doctor_id, date), []))


class FakeApptRepo:
    def __init__(self):
        self.appts = {}
        self.issued = {}
        self.race_on_next_write = False
        self._tick = 0

    def _issue_queue_number(self, date):
        number = next_queue_number(self.appts.values(), date, self.issued.get(date, 0))
        self.issued[date] = number
        return number

    def get_by_id(self, appointment_id):
        return self.appts.get(appointment_id)

    def list_for_date(self, date, doctor_id=None):
        return [a for a in self.appts.values() if a.date == date and (doctor_id is None or a.doctor_id == doctor_id)]

    def list_between(self, date_from, date_to):
        return [a for a in self.appts.values() if date_from <= a.date <= date_to]

    def create_if_free(self, appointment):
        if self.race_on_next_write:
            self.race_on_next_write = False
            raise SlotTakenError(appointment.doctor_id, appointment.date, appointment.time)
        if has_conflict(appointment.date, appointment.time, appointment.doctor_id, self.appts.values()):
            raise SlotTakenError(appointment.doctor_id, appointment.date, appointment.time)
        appointment.queue_number = self._issue_queue_number(appointment.date)
        self._tick += 1
        appointment.created_at = datetime(2030, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._tick)
        self.appts[appointment.id] = appointment
        return appointment

    def move_if_free(self, appointment_id, date, time, priority=None):
        a = self.appts[appointment_id]
        if has_conflict(date, time, a.doctor_id, self.appts.values(), exclude_id=appointment_id):
            raise SlotTakenError(a.doctor_id, date, time)
        if a.date != date:
            a.queue_number = self._issue_queue_number(date)
        a.date, a.time = date, time
        if priority:
            a.priority = priority
        return a

    def update_status(self, appointment_id, status, reason=None):
        a = self.appts.get(appointment_id)
        if a:
            a.status = status
            if reason is not None:
                a.cancellation_reason = reason
        return a


class FakeWaitingList:
    def __init__(self):
        self.entries = []

    def add(self, entry):
        self.entries.append(entry)
        return entry

    def next_for(self, doctor_id, date):
        matching = [e for e in self.entries if e.preferred_doctor_id == doctor_id and e.preferred_date == date]
        matching.sort(key=lambda e: (-priority_weight(e.priority), e.added_at))
        return matching[0] if matching else None

    def remove(self, entry_id):
        self.entries = [e for e in self.entries if e.id != entry_id]

    def list_for(self, doctor_id=None, date=None):
        return [e for e in self.entries
                if (doctor_id is None or e.preferred_doctor_id == doctor_id)
                and (date is None or e.preferred_date == date)]


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def notify(self, event, appointment):
        self.events.append((event, appointment.id))


def make_service(max_appointments=None):
    doctor = Doctor(
        id="d1",
        name="Dr. Santos",
        working_hours=WorkingHours("9:00 AM", "5:00 PM"),
        buffer_time=15,
        max_appointments=max_appointments,
    )
    svc = AppointmentsService(
        repo=FakeApptRepo(),
        doctors=FakeDoctorsRepo(doctor),
        waiting_list=FakeWaitingList(),
        notifier=RecordingNotifier(),
        settings=Settings(),
    )
    return svc


def test_book_success():
    svc = make_service()
    out = svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW)
    assert out.appointment is not None
    assert out.appointment.time == "10:00 AM"
    assert out.appointment.status == "pending"
    assert out.appointment.queue_number == 1
    assert svc.notifier.events == [("appointment_created", out.appointment.id)]


def test_book_accepts_24h_input_and_stores_12h():
    svc = make_service()
    out = svc.book("Ana", "d1", DATE, "14:00", now=NOW)
    assert out.appointment.time == "2:00 PM"


def test_book_rejects_taken_slot():
    svc = make_service()
    svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW)
    with pytest.raises(HTTPException) as exc:
        svc.book("Ben", "d1", DATE, "10:00 AM", now=NOW)
    assert exc.value.status_code == 409


def test_book_rejects_time_off_the_grid_and_lunch():
    svc = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.book("Ana", "d1", DATE, "10:10 AM", now=NOW)
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException) as exc:
        svc.book("Ana", "d1", DATE, "12:00 PM", now=NOW)
    assert exc.value.status_code == 400


def test_book_validation_errors():
    svc = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.book("Ana", "d1", "11/06/2030", "10:00 AM", now=NOW)
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException) as exc:
        svc.book("Ana", "d1", DATE, "10:00 AM", priority="vip", now=NOW)
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException) as exc:
        svc.book("Ana", "nobody", DATE, "10:00 AM", now=NOW)
    assert exc.value.status_code == 404


def test_normal_booking_cannot_take_emergency_slot():
    svc = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.book("Ana", "d1", DATE, "9:15 AM", now=NOW)
    assert exc.value.status_code == 409


def test_emergency_booking_is_stored_at_reserved_time():
    svc = make_service()
    out = svc.book("Eve", "d1", DATE, "9:15 AM", priority="emergency", now=NOW)
    assert out.appointment.time == "9:00 AM"
    # The regular 9:00 slot is now taken for everybody
    with pytest.raises(HTTPException) as exc:
        svc.book("Ana", "d1", DATE, "9:00 AM", now=NOW)
    assert exc.value.status_code == 409


def test_lost_race_maps_to_conflict():
    svc = make_service()
    svc.repo.race_on_next_write = True
    with pytest.raises(HTTPException) as exc:
        svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW)
    assert exc.value.status_code == 409
    assert "just taken" in exc.value.detail
    assert svc.notifier.events == []


def test_full_day_rejects_or_joins_waiting_list():
    svc = make_service(max_appointments=1)
    svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW)
    with pytest.raises(HTTPException) as exc:
        svc.book("Ben", "d1", DATE, "11:00 AM", now=NOW)
    assert exc.value.status_code == 409

    out = svc.book("Ben", "d1", DATE, "11:00 AM", join_waiting_list=True, now=NOW)
    assert out.appointment is None
    assert out.waiting_list_entry.patient_name == "Ben"
    assert len(svc.waiting_list_entries("d1", DATE)) == 1


def test_cancel_promotes_highest_priority_waiting_patient():
    svc = make_service(max_appointments=1)
    first = svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW).appointment
    svc.book("Ben", "d1", DATE, "11:00 AM", join_waiting_list=True, now=NOW)
    svc.book("Cy", "d1", DATE, "11:00 AM", priority="urgent", join_waiting_list=True, now=NOW)

    cancelled, promoted = svc.cancel(first.id, reason="sick")

    assert cancelled.status == "cancelled"
    assert cancelled.cancellation_reason == "sick"
    assert promoted.patient_name == "Cy"
    assert promoted.time == "10:00 AM"
    assert promoted.booked_by == "staff"
    assert promoted.queue_number == 2
    assert [e.patient_name for e in svc.waiting_list.entries] == ["Ben"]
    assert ("waiting_list_assigned", promoted.id) in svc.notifier.events


def test_cancelled_emergency_hands_over_its_displayed_slot():
    svc = make_service(max_appointments=1)
    eve = svc.book("Eve", "d1", DATE, "9:00 AM", priority="emergency", now=NOW).appointment
    assert eve.time == "8:45 AM"
    svc.book("Ben", "d1", DATE, "10:00 AM", join_waiting_list=True, now=NOW)

    _, promoted = svc.cancel(eve.id, now=NOW)

    assert promoted.patient_name == "Ben"
    assert promoted.time == "9:00 AM"


def test_promotion_falls_back_to_stored_time_when_displayed_slot_is_emergency_only():
    svc = make_service(max_appointments=1)
    eve = svc.book("Eve", "d1", DATE, "9:15 AM", priority="emergency", now=NOW).appointment
    svc.book("Ben", "d1", DATE, "10:00 AM", join_waiting_list=True, now=NOW)

    _, promoted = svc.cancel(eve.id, now=NOW)

    assert eve.time == "9:00 AM"
    assert promoted.time == "9:00 AM"
    assert promoted.priority == "normal"


def test_blocked_freed_slot_keeps_patient_on_waiting_list():
    svc = make_service(max_appointments=1)
    ana = svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW).appointment
    svc.book("Ben", "d1", DATE, "11:00 AM", join_waiting_list=True, now=NOW)
    svc.doctors.blocked[("d1", DATE)] = ["10:00 AM"]

    _, promoted = svc.cancel(ana.id, now=NOW)

    assert promoted is None
    assert [e.patient_name for e in svc.waiting_list.entries] == ["Ben"]
    assert not any(event == "waiting_list_assigned" for event, _ in svc.notifier.events)


def test_cancel_twice_and_completed_are_rejected():
    svc = make_service()
    appt = svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW).appointment
    svc.update_status(appt.id, "completed")
    with pytest.raises(HTTPException):
        svc.cancel(appt.id)

    other = svc.book("Ben", "d1", DATE, "11:00 AM", now=NOW).appointment
    svc.cancel(other.id)
    with pytest.raises(HTTPException):
        svc.cancel(other.id)


def test_reschedule_moves_and_keeps_queue_number_on_same_day():
    svc = make_service()
    appt = svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW).appointment
    moved = svc.reschedule(appt.id, DATE, "10:30 AM", now=NOW)
    assert moved.time == "10:30 AM"
    assert moved.queue_number == 1
    assert svc.notifier.events[-1] == ("appointment_updated", appt.id)


def test_queue_number_not_reused_after_reschedule_to_another_day():
    svc = make_service()
    svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW)
    ben = svc.book("Ben", "d1", DATE, "10:30 AM", now=NOW).appointment
    assert ben.queue_number == 2

    moved = svc.reschedule(ben.id, "2030-06-12", "10:30 AM", now=NOW)
    assert moved.queue_number == 1

    cy = svc.book("Cy", "d1", DATE, "11:00 AM", now=NOW).appointment
    assert cy.queue_number == 3


def test_reschedule_onto_own_slot_is_allowed_but_not_onto_others():
    svc = make_service()
    a = svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW).appointment
    svc.book("Ben", "d1", DATE, "11:00 AM", now=NOW)
    assert svc.reschedule(a.id, DATE, "10:00 AM", now=NOW).time == "10:00 AM"
    with pytest.raises(HTTPException) as exc:
        svc.reschedule(a.id, DATE, "11:00 AM", now=NOW)
    assert exc.value.status_code == 409


def test_status_updates_emit_events():
    svc = make_service()
    appt = svc.book("Ana", "d1", DATE, "10:00 AM", now=NOW).appointment
    svc.update_status(appt.id, "confirmed")
    svc.update_status(appt.id, "in-progress")
    assert [e for e, _ in svc.notifier.events] == ["appointment_created", "appointment_confirmed", "now_serving"]
    with pytest.raises(HTTPException):
        svc.update_status(appt.id, "teleported")
