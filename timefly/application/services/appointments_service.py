import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fastapi import HTTPException

from ...config import Settings, get_settings
from ...domain.calendar import is_daily_limit_reached
from ...domain.conflicts import displayed_time
from ...domain.models import (
    APPOINTMENT_STATUSES,
    Appointment,
    BOOKED_BY_PATIENT,
    BOOKED_BY_STAFF,
    Doctor,
    PRIORITY_NORMAL,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    WaitingListEntry,
)
from ...domain.schedule import override_for, resolve
from ...domain.slots import find_slot, generate_slots
from ...domain.timeutils import parse_time, same_time
from ...exceptions import SlotTakenError
from ..ports.appointments_repo import AppointmentsRepository
from ..ports.doctors_repo import DoctorsRepository
from ..ports.notifier import Notifier
from ..ports.waiting_list_repo import WaitingListRepository
from .scheduling_service import slot_options, validate_date, validate_priority

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "This time slot was just taken by another booking. Please choose another time."

STATUS_EVENTS = {
    STATUS_PENDING: "appointment_pending",
    STATUS_CONFIRMED: "appointment_confirmed",
    STATUS_IN_PROGRESS: "now_serving",
    STATUS_COMPLETED: "appointment_completed",
}


@dataclass
class BookingOutcome:
    appointment: Optional[Appointment] = None
    waiting_list_entry: Optional[WaitingListEntry] = None


@dataclass
class AppointmentsService:
    repo: AppointmentsRepository
    doctors: DoctorsRepository
    waiting_list: WaitingListRepository
    notifier: Notifier
    settings: Settings = field(default_factory=get_settings)

    def _doctor(self, doctor_id: str) -> Doctor:
        doctor = self.doctors.get(doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    def _get(self, appointment_id: str) -> Appointment:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appt

    def _reserve(
        self,
        doctor: Doctor,
        date: str,
        time: str,
        priority: str,
        exclude_appointment_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Check ``time`` against freshly generated slots and return the time to persist."""
        if parse_time(time) is None:
            raise HTTPException(status_code=400, detail="Invalid appointment time format. Use h:mm AM/PM")
        override = override_for(self.doctors.list_overrides(date, date), doctor.id, date)
        if not resolve(doctor, date, override, self.settings.DEFAULT_MAX_APPOINTMENTS).is_open:
            raise HTTPException(status_code=400, detail="Doctor is not available on this date")
        options = slot_options(
            self.settings,
            priority=priority,
            exclude_appointment_id=exclude_appointment_id,
            blocked_times=self.doctors.list_blocked_times(doctor.id, date),
            availability_override=override,
            now=now,
        )
        slot = find_slot(generate_slots(doctor, date, self.repo.list_for_date(date, doctor.id), options), time)
        if slot is None:
            raise HTTPException(status_code=400, detail="Requested time is not a bookable slot for this doctor")
        if not slot.available:
            raise HTTPException(status_code=409, detail="This time slot is not available")
        return slot.reserved_time or slot.time

    def book(
        self,
        patient_name: str,
        doctor_id: str,
        date: str,
        time: str,
        priority: str = PRIORITY_NORMAL,
        age: Optional[int] = None,
        condition: str = "",
        email: Optional[str] = None,
        phone: Optional[str] = None,
        booked_by: str = BOOKED_BY_PATIENT,
        join_waiting_list: bool = False,
        now: Optional[datetime] = None,
    ) -> BookingOutcome:
        validate_date(date)
        validate_priority(priority)
        doctor = self._doctor(doctor_id)

        snapshot = self.repo.list_for_date(date, doctor_id)
        if is_daily_limit_reached(doctor, date, snapshot, default_max_appointments=self.settings.DEFAULT_MAX_APPOINTMENTS):
            if not join_waiting_list:
                raise HTTPException(status_code=409, detail=f"{doctor.name} is fully booked on {date}")
            entry = self.waiting_list.add(WaitingListEntry(
                id=str(uuid.uuid4()),
                patient_name=patient_name,
                preferred_doctor_id=doctor.id,
                preferred_doctor_name=doctor.name,
                preferred_date=date,
                priority=priority,
                email=email,
                phone=phone,
                age=age,
                condition=condition,
                added_at=datetime.now(timezone.utc),
            ))
            logger.info(f"{patient_name} added to waiting list for doctor {doctor.id} on {date}")
            return BookingOutcome(waiting_list_entry=entry)

        reserved = self._reserve(doctor, date, time, priority, now=now)
        try:
            created = self.repo.create_if_free(Appointment(
                id=str(uuid.uuid4()),
                patient_name=patient_name,
                date=date,
                time=reserved,
                doctor_id=doctor.id,
                doctor_name=doctor.name,
                status=STATUS_PENDING,
                priority=priority,
                age=age,
                condition=condition,
                email=email,
                phone=phone,
                booked_by=booked_by,
            ))
        except SlotTakenError:
            logger.info(f"Slot {reserved} on {date} for doctor {doctor.id} was taken before the write")
            raise HTTPException(status_code=409, detail=SLOT_TAKEN_MESSAGE)

        self.notifier.notify("appointment_created", created)
        return BookingOutcome(appointment=created)

    def reschedule(
        self,
        appointment_id: str,
        date: str,
        time: str,
        priority: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Appointment:
        validate_date(date)
        appt = self._get(appointment_id)
        if appt.status in (STATUS_CANCELLED, STATUS_COMPLETED):
            raise HTTPException(status_code=400, detail=f"Cannot reschedule a {appt.status} appointment")
        priority = validate_priority(priority or appt.priority)
        doctor = self._doctor(appt.doctor_id)

        snapshot = self.repo.list_for_date(date, doctor.id)
        if is_daily_limit_reached(doctor, date, snapshot, exclude_id=appt.id,
                                  default_max_appointments=self.settings.DEFAULT_MAX_APPOINTMENTS):
            raise HTTPException(status_code=409, detail="This doctor has reached their maximum appointments for this day")

        reserved = self._reserve(doctor, date, time, priority, exclude_appointment_id=appt.id, now=now)
        try:
            moved = self.repo.move_if_free(appt.id, date, reserved, priority)
        except SlotTakenError:
            raise HTTPException(status_code=409, detail=SLOT_TAKEN_MESSAGE)

        self.notifier.notify("appointment_updated", moved)
        return moved

    def cancel(
        self,
        appointment_id: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Appointment, Optional[Appointment]]:
        """Cancel and hand the freed slot to the next waiting-list patient, if any."""
        appt = self._get(appointment_id)
        if appt.status == STATUS_CANCELLED:
            raise HTTPException(status_code=400, detail="Appointment is already cancelled")
        if appt.status == STATUS_COMPLETED:
            raise HTTPException(status_code=400, detail="Cannot cancel completed appointment")

        cancelled = self.repo.update_status(appt.id, STATUS_CANCELLED, reason)
        self.notifier.notify("appointment_cancelled", cancelled)
        return cancelled, self._promote_waiting_list(cancelled, now=now)

    def _freed_slot(self, doctor: Doctor, freed: Appointment, priority: str, now: Optional[datetime]) -> Optional[str]:
        """Time to persist for ``priority`` in the slot ``freed`` gave up, or None when none is offered.

        Emergency bookings are stored ahead of the slot they were made from,
        so the displayed slot is tried first and the stored time second.
        """
        shown = displayed_time(freed.time, doctor, freed.priority, self.settings.DEFAULT_BUFFER_TIME)
        candidates = [t for t in (shown, freed.time) if t]
        if len(candidates) == 2 and same_time(candidates[0], candidates[1]):
            candidates = candidates[:1]
        for candidate in candidates:
            try:
                return self._reserve(doctor, freed.date, candidate, priority, now=now)
            except HTTPException as e:
                logger.info(f"Freed slot {candidate} on {freed.date} not offered for {priority} priority: {e.detail}")
        return None

    def _promote_waiting_list(self, freed: Appointment, now: Optional[datetime] = None) -> Optional[Appointment]:
        entry = self.waiting_list.next_for(freed.doctor_id, freed.date)
        if entry is None:
            return None
        doctor = self.doctors.get(freed.doctor_id)
        if doctor is None:
            return None
        time = self._freed_slot(doctor, freed, entry.priority, now)
        if time is None:
            logger.info(f"Waiting-list entry {entry.id} kept; no bookable slot freed on {freed.date}")
            return None
        try:
            promoted = self.repo.create_if_free(Appointment(
                id=str(uuid.uuid4()),
                patient_name=entry.patient_name,
                date=freed.date,
                time=time,
                doctor_id=freed.doctor_id,
                doctor_name=entry.preferred_doctor_name or freed.doctor_name,
                status=STATUS_PENDING,
                priority=entry.priority,
                age=entry.age,
                condition=entry.condition,
                email=entry.email,
                phone=entry.phone,
                booked_by=BOOKED_BY_STAFF,
            ))
        except SlotTakenError:
            logger.warning(f"Freed slot {time} on {freed.date} was rebooked before waiting-list entry {entry.id}")
            return None
        self.waiting_list.remove(entry.id)
        logger.info(f"Waiting-list entry {entry.id} assigned to appointment {promoted.id}")
        self.notifier.notify("waiting_list_assigned", promoted)
        return promoted

    def update_status(self, appointment_id: str, status: str) -> Appointment:
        if status not in APPOINTMENT_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid status. Must be one of: {APPOINTMENT_STATUSES}")
        if status == STATUS_CANCELLED:
            cancelled, _ = self.cancel(appointment_id)
            return cancelled
        appt = self._get(appointment_id)
        if appt.status == STATUS_CANCELLED:
            raise HTTPException(status_code=400, detail="Appointment is cancelled")
        updated = self.repo.update_status(appt.id, status)
        self.notifier.notify(STATUS_EVENTS[status], updated)
        return updated

    def get(self, appointment_id: str) -> Appointment:
        return self._get(appointment_id)

    def waiting_list_entries(self, doctor_id: Optional[str] = None, date: Optional[str] = None) -> List[WaitingListEntry]:
        if date is not None:
            validate_date(date)
        return self.waiting_list.list_for(doctor_id, date)
