from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from timefly.application.services.scheduling_service import SchedulingService
from timefly.config import Settings
from timefly.domain.models import Appointment, AvailabilityOverride, Doctor, WorkingHours

DATE = "2030-06-11"
NOW = datetime(2030, 6, 10, 8, 0, tzinfo=timezone(timedelta(hours=8)))


class FakeDoctorsRepo:
    def __init__(self, *doctors):
        self.doctors = {d.id: d for d in doctors}
        self.overrides = {}
        self.blocked = set()

    def get(self, doctor_id):
        return self.doctors.get(doctor_id)

    def list_all(self):
        return list(self.doctors.values())

    def create(self, doctor):
        self.doctors[doctor.id] = doctor
        return doctor

    def update(self, doctor):
        if doctor.id not in self.doctors:
            return None
        self.doctors[doctor.id] = doctor
        return doctor

    def list_overrides(self, date_from=None, date_to=None):
        return [AvailabilityOverride(d, day, v) for (d, day), v in self.overrides.items()
                if (date_from is None or day >= date_from) and (date_to is None or day <= date_to)]

    def set_override(self, doctor_id, date, available):
        self.overrides[(doctor_id, date)] = available
        return AvailabilityOverride(doctor_id, date, available)

    def list_blocked_times(self, doctor_id, date):
        return [t for d, day, t in self.blocked if d == doctor_id and day == date]

    def set_blocked(self, doctor_id, date, time, blocked):
        if blocked:
            self.blocked.add((doctor_id, date, time))
        else:
            self.blocked.discard((doctor_id, date, time))


class FakeApptRepo:
    def __init__(self, *appts):
        self.appts = list(appts)

    def list_for_date(self, date, doctor_id=None):
        return [a for a in self.appts if a.date == date and (doctor_id is None or a.doctor_id == doctor_id)]

    def list_between(self, date_from, date_to):
        return [a for a in self.appts if date_from <= a.date <= date_to]


def doctor(id="d1", **kwargs):
    return Doctor(id=id, name=f"Dr. {id}", working_hours=WorkingHours("9:00 AM", "5:00 PM"), buffer_time=15, **kwargs)


def make_service(*appts, doctors=None):
    return SchedulingService(
        doctors=FakeDoctorsRepo(*(doctors or [doctor()])),
        appointments=FakeApptRepo(*appts),
        settings=Settings(),
    )


def test_slots_reflect_bookings_and_blocks():
    svc = make_service(Appointment(id="a1", patient_name="p", date=DATE, time="10:00 AM", doctor_id="d1"))
    svc.set_slot_blocked("d1", DATE, "11:00", True)
    slots = {s.time: s for s in svc.slots("d1", DATE, now=NOW)}
    assert slots["10:00 AM"].booked is True
    assert slots["11:00 AM"].blocked is True and slots["11:00 AM"].available is False

    svc.set_slot_blocked("d1", DATE, "11:00", False)
    slots = {s.time: s for s in svc.slots("d1", DATE, now=NOW)}
    assert slots["11:00 AM"].available is True


def test_availability_toggle_closes_day_for_slots_and_picker():
    svc = make_service(doctors=[doctor("d1"), doctor("d2")])
    svc.set_availability("d1", DATE, False)
    assert svc.slots("d1", DATE, now=NOW) == []
    assert [d.id for d in svc.doctors_for_date(DATE)] == ["d2"]
    assert svc.resolve_day("d1", DATE).source == "availability_override"


def test_invalid_inputs():
    svc = make_service()
    with pytest.raises(HTTPException) as exc:
        svc.slots("d1", "2030-13-01")
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException) as exc:
        svc.slots("missing", DATE)
    assert exc.value.status_code == 404
    with pytest.raises(HTTPException):
        svc.set_slot_blocked("d1", DATE, "half past", True)
    with pytest.raises(HTTPException):
        svc.calendar(2030, 13)


def test_queue_view():
    appts = [
        Appointment(id="n", patient_name="n", date=DATE, time="9:00 AM", doctor_id="d1", queue_number=1),
        Appointment(id="e", patient_name="e", date=DATE, time="9:30 AM", doctor_id="d1",
                    queue_number=3, priority="emergency"),
        Appointment(id="x", patient_name="x", date=DATE, time="10:00 AM", doctor_id="d1",
                    queue_number=2, status="cancelled"),
    ]
    view = make_service(*appts).queue(DATE)
    assert [e.appointment.id for e in view.entries] == ["e", "n"]
    assert view.currently_serving.appointment.id == "n"
    assert view.up_next.appointment.id == "e"
    assert view.entries[1].estimated_wait_minutes == 30


def test_day_and_calendar():
    svc = make_service(Appointment(id="a", patient_name="p", date=DATE, time="9:00 AM", doctor_id="d1"))
    assert svc.day(DATE).booked == 1
    days = svc.calendar(2030, 6)
    assert len(days) == 30
    assert days[10].date == DATE and days[10].booked == 1


def test_create_and_update_doctor():
    svc = make_service(doctors=[])
    created = svc.create_doctor(Doctor(id="", name="Dr. New", working_hours=WorkingHours("8:00 AM", "12:00 PM")))
    assert created.id
    with pytest.raises(HTTPException) as exc:
        svc.create_doctor(Doctor(id=created.id, name="Dup"))
    assert exc.value.status_code == 409
    with pytest.raises(HTTPException) as exc:
        svc.create_doctor(Doctor(id="bad", name="Bad", working_hours=WorkingHours("8", "noon")))
    assert exc.value.status_code == 400

    created.name = "Dr. Renamed"
    assert svc.update_doctor(created).name == "Dr. Renamed"
    with pytest.raises(HTTPException) as exc:
        svc.update_doctor(Doctor(id="ghost", name="Ghost"))
    assert exc.value.status_code == 404
