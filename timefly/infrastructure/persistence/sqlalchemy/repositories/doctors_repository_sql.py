from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from .....application.ports.doctors_repo import DoctorsRepository
from .....db.models import BlockedSlotRecord, DoctorAvailabilityRecord, DoctorRecord
from .....domain.models import AvailabilityOverride, Doctor, ScheduleOverride, WorkingHours
from .....domain.timeutils import normalize_time, utc_now


def _override_from_json(data: Dict[str, Any]) -> ScheduleOverride:
    hours = data.get("custom_hours")
    return ScheduleOverride(
        available=bool(data.get("available", True)),
        custom_hours=WorkingHours(start=hours["start"], end=hours["end"]) if hours else None,
        max_appointments=data.get("max_appointments"),
    )


def _override_to_json(override: ScheduleOverride) -> Dict[str, Any]:
    data: Dict[str, Any] = {"available": override.available}
    if override.custom_hours:
        data["custom_hours"] = {"start": override.custom_hours.start, "end": override.custom_hours.end}
    if override.max_appointments is not None:
        data["max_appointments"] = override.max_appointments
    return data


class SqlDoctorsRepository(DoctorsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_domain(self, d: DoctorRecord) -> Doctor:
        hours = None
        if d.working_start and d.working_end:
            hours = WorkingHours(start=d.working_start, end=d.working_end)
        return Doctor(
            id=d.id,
            name=d.name,
            specialty=d.specialty,
            available=d.available,
            buffer_time=d.buffer_time,
            max_appointments=d.max_appointments,
            consultation_duration=d.consultation_duration,
            working_hours=hours,
            off_days=list(d.off_days or []),
            working_days=list(d.working_days) if d.working_days is not None else None,
            available_dates=list(d.available_dates) if d.available_dates is not None else None,
            unavailable_dates=list(d.unavailable_dates or []),
            schedule_settings={k: _override_from_json(v) for k, v in (d.schedule_settings or {}).items()},
        )

    def _apply(self, record: DoctorRecord, doctor: Doctor) -> DoctorRecord:
        record.name = doctor.name
        record.specialty = doctor.specialty
        record.available = doctor.available
        record.buffer_time = doctor.buffer_time
        record.max_appointments = doctor.max_appointments
        record.consultation_duration = doctor.consultation_duration
        record.working_start = doctor.working_hours.start if doctor.working_hours else None
        record.working_end = doctor.working_hours.end if doctor.working_hours else None
        record.off_days = list(doctor.off_days)
        record.working_days = list(doctor.working_days) if doctor.working_days is not None else None
        record.available_dates = list(doctor.available_dates) if doctor.available_dates is not None else None
        record.unavailable_dates = list(doctor.unavailable_dates)
        record.schedule_settings = {k: _override_to_json(v) for k, v in doctor.schedule_settings.items()}
        record.updated_at = utc_now()
        return record

    def get(self, doctor_id: str) -> Optional[Doctor]:
        d = self.session.exec(select(DoctorRecord).where(DoctorRecord.id == doctor_id)).first()
        return self._to_domain(d) if d else None

    def list_all(self) -> List[Doctor]:
        rows = self.session.exec(select(DoctorRecord).order_by(DoctorRecord.name)).all()
        return [self._to_domain(r) for r in rows]

    def create(self, doctor: Doctor) -> Doctor:
        record = self._apply(DoctorRecord(id=doctor.id, name=doctor.name), doctor)
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return self._to_domain(record)

    def update(self, doctor: Doctor) -> Optional[Doctor]:
        record = self.session.exec(select(DoctorRecord).where(DoctorRecord.id == doctor.id)).first()
        if not record:
            return None
        self._apply(record, doctor)
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return self._to_domain(record)

    def list_overrides(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[AvailabilityOverride]:
        query = select(DoctorAvailabilityRecord)
        if date_from is not None:
            query = query.where(DoctorAvailabilityRecord.date >= date_from)
        if date_to is not None:
            query = query.where(DoctorAvailabilityRecord.date <= date_to)
        return [
            AvailabilityOverride(doctor_id=r.doctor_id, date=r.date, available=r.available)
            for r in self.session.exec(query).all()
        ]

    def set_override(self, doctor_id: str, date: str, available: bool) -> AvailabilityOverride:
        record_id = f"{doctor_id}_{date}"
        record = self.session.exec(
            select(DoctorAvailabilityRecord).where(DoctorAvailabilityRecord.id == record_id)
        ).first()
        if record is None:
            record = DoctorAvailabilityRecord(id=record_id, doctor_id=doctor_id, date=date, available=available)
        else:
            record.available = available
            record.updated_at = utc_now()
        self.session.add(record)
        self.session.commit()
        return AvailabilityOverride(doctor_id=doctor_id, date=date, available=available)

    def list_blocked_times(self, doctor_id: str, date: str) -> List[str]:
        rows = self.session.exec(
            select(BlockedSlotRecord)
            .where(BlockedSlotRecord.doctor_id == doctor_id)
            .where(BlockedSlotRecord.date == date)
        ).all()
        return [r.time for r in rows]

    def set_blocked(self, doctor_id: str, date: str, time: str, blocked: bool) -> None:
        time = normalize_time(time) or time
        existing = self.session.exec(
            select(BlockedSlotRecord)
            .where(BlockedSlotRecord.doctor_id == doctor_id)
            .where(BlockedSlotRecord.date == date)
            .where(BlockedSlotRecord.time == time)
        ).first()
        if blocked and existing is None:
            self.session.add(BlockedSlotRecord(doctor_id=doctor_id, date=date, time=time))
        elif not blocked and existing is not None:
            self.session.delete(existing)
        self.session.commit()
