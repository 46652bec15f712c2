import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....application.ports.appointments_repo import AppointmentsRepository
from .....db.models import AppointmentRecord, QueueCounterRecord
from .....domain.models import Appointment, STATUS_CANCELLED
from .....domain.timeutils import as_utc, normalize_time, utc_now
from .....exceptions import SlotTakenError

logger = logging.getLogger(__name__)


class SqlAppointmentsRepository(AppointmentsRepository):
    """Appointment store backed by SQLModel.

    Slot occupancy and queue numbers are enforced twice: by a read inside
    the writing transaction and by unique indexes, so two sessions that pass
    the read concurrently still cannot both commit.
    """

    def __init__(self, session: Session, max_retries: int = 3):
        self.session = session
        self.max_retries = max(1, max_retries)

    def _to_domain(self, a: AppointmentRecord) -> Appointment:
        return Appointment(
            id=a.id,
            patient_name=a.patient_name,
            date=a.date,
            time=a.time,
            doctor_id=a.doctor_id,
            status=a.status,
            priority=a.priority,
            doctor_name=a.doctor_name,
            age=a.age,
            condition=a.condition,
            email=a.email,
            phone=a.phone,
            queue_number=a.queue_number,
            booked_by=a.booked_by,
            cancellation_reason=a.cancellation_reason,
            created_at=as_utc(a.created_at),
            updated_at=as_utc(a.updated_at),
        )

    def _record(self, appointment_id: str) -> Optional[AppointmentRecord]:
        return self.session.exec(select(AppointmentRecord).where(AppointmentRecord.id == appointment_id)).first()

    def _occupant(self, doctor_id: str, date: str, time: str, exclude_id: Optional[str] = None) -> Optional[AppointmentRecord]:
        query = (
            select(AppointmentRecord)
            .where(AppointmentRecord.doctor_id == doctor_id)
            .where(AppointmentRecord.date == date)
            .where(AppointmentRecord.time == time)
            .where(AppointmentRecord.status != STATUS_CANCELLED)
        )
        if exclude_id is not None:
            query = query.where(AppointmentRecord.id != exclude_id)
        return self.session.exec(query.order_by(AppointmentRecord.created_at)).first()

    def _next_queue_number(self, date: str) -> int:
        # The counter row is written in the caller's transaction, so a rollback
        # also rolls the number back. Cancelled and moved-away rows keep their
        # numbers retired because the counter never goes down.
        counter = self.session.exec(select(QueueCounterRecord).where(QueueCounterRecord.date == date)).first()
        if counter is None:
            counter = QueueCounterRecord(date=date, last_number=0)
        current = self.session.exec(
            select(func.max(AppointmentRecord.queue_number)).where(AppointmentRecord.date == date)
        ).one()
        counter.last_number = max(counter.last_number, current or 0) + 1
        self.session.add(counter)
        return counter.last_number

    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        a = self._record(appointment_id)
        return self._to_domain(a) if a else None

    def list_for_date(self, date: str, doctor_id: Optional[str] = None) -> List[Appointment]:
        query = select(AppointmentRecord).where(AppointmentRecord.date == date)
        if doctor_id is not None:
            query = query.where(AppointmentRecord.doctor_id == doctor_id)
        rows = self.session.exec(query.order_by(AppointmentRecord.created_at)).all()
        return [self._to_domain(r) for r in rows]

    def list_between(self, date_from: str, date_to: str) -> List[Appointment]:
        rows = self.session.exec(
            select(AppointmentRecord)
            .where(AppointmentRecord.date >= date_from)
            .where(AppointmentRecord.date <= date_to)
            .order_by(AppointmentRecord.date, AppointmentRecord.created_at)
        ).all()
        return [self._to_domain(r) for r in rows]

    def create_if_free(self, appointment: Appointment) -> Appointment:
        time = normalize_time(appointment.time) or appointment.time
        last_error = None
        for attempt in range(1, self.max_retries + 1):
            if self._occupant(appointment.doctor_id, appointment.date, time):
                raise SlotTakenError(appointment.doctor_id, appointment.date, time)
            record = AppointmentRecord(
                id=appointment.id,
                doctor_id=appointment.doctor_id,
                doctor_name=appointment.doctor_name,
                patient_name=appointment.patient_name,
                age=appointment.age,
                condition=appointment.condition,
                date=appointment.date,
                time=time,
                status=appointment.status,
                priority=appointment.priority,
                email=appointment.email,
                phone=appointment.phone,
                queue_number=self._next_queue_number(appointment.date),
                booked_by=appointment.booked_by,
            )
            self.session.add(record)
            try:
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                last_error = e
                if self._occupant(appointment.doctor_id, appointment.date, time):
                    raise SlotTakenError(appointment.doctor_id, appointment.date, time)
                logger.warning(f"Queue number collision on {appointment.date} (attempt {attempt}/{self.max_retries})")
                continue
            self.session.refresh(record)
            return self._to_domain(record)
        raise last_error

    def move_if_free(self, appointment_id: str, date: str, time: str, priority: Optional[str] = None) -> Appointment:
        time = normalize_time(time) or time
        last_error = None
        for attempt in range(1, self.max_retries + 1):
            record = self._record(appointment_id)
            if record is None:
                raise LookupError(f"Appointment {appointment_id} not found")
            if self._occupant(record.doctor_id, date, time, exclude_id=appointment_id):
                raise SlotTakenError(record.doctor_id, date, time)
            if record.date != date:
                record.queue_number = self._next_queue_number(date)
            record.date = date
            record.time = time
            if priority:
                record.priority = priority
            record.updated_at = utc_now()
            self.session.add(record)
            try:
                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                last_error = e
                if self._occupant(record.doctor_id, date, time, exclude_id=appointment_id):
                    raise SlotTakenError(record.doctor_id, date, time)
                logger.warning(f"Queue number collision moving {appointment_id} (attempt {attempt}/{self.max_retries})")
                continue
            self.session.refresh(record)
            return self._to_domain(record)
        raise last_error

    def update_status(self, appointment_id: str, status: str, reason: Optional[str] = None) -> Optional[Appointment]:
        a = self._record(appointment_id)
        if not a:
            return None
        a.status = status
        if reason is not None:
            a.cancellation_reason = reason
        a.updated_at = utc_now()
        self.session.add(a)
        self.session.commit()
        self.session.refresh(a)
        return self._to_domain(a)
