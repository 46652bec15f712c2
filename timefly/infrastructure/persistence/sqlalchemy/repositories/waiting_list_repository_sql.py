from typing import List, Optional

from sqlmodel import Session, select

from .....application.ports.waiting_list_repo import WaitingListRepository
from .....db.models import WaitingListRecord
from .....domain.models import WaitingListEntry
from .....domain.queue import priority_weight
from .....domain.timeutils import as_utc


class SqlWaitingListRepository(WaitingListRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_domain(self, w: WaitingListRecord) -> WaitingListEntry:
        return WaitingListEntry(
            id=w.id,
            patient_name=w.patient_name,
            preferred_doctor_id=w.preferred_doctor_id,
            preferred_date=w.preferred_date,
            priority=w.priority,
            preferred_doctor_name=w.preferred_doctor_name,
            email=w.email,
            phone=w.phone,
            age=w.age,
            condition=w.condition,
            added_at=as_utc(w.added_at),
        )

    def add(self, entry: WaitingListEntry) -> WaitingListEntry:
        record = WaitingListRecord(
            id=entry.id,
            patient_name=entry.patient_name,
            email=entry.email,
            phone=entry.phone,
            age=entry.age,
            condition=entry.condition,
            preferred_doctor_id=entry.preferred_doctor_id,
            preferred_doctor_name=entry.preferred_doctor_name,
            preferred_date=entry.preferred_date,
            priority=entry.priority,
            priority_weight=priority_weight(entry.priority),
        )
        if entry.added_at is not None:
            record.added_at = entry.added_at
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return self._to_domain(record)

    def next_for(self, doctor_id: str, date: str) -> Optional[WaitingListEntry]:
        w = self.session.exec(
            select(WaitingListRecord)
            .where(WaitingListRecord.preferred_doctor_id == doctor_id)
            .where(WaitingListRecord.preferred_date == date)
            .order_by(WaitingListRecord.priority_weight.desc(), WaitingListRecord.added_at)
        ).first()
        return self._to_domain(w) if w else None

    def remove(self, entry_id: str) -> None:
        w = self.session.exec(select(WaitingListRecord).where(WaitingListRecord.id == entry_id)).first()
        if not w:
            return
        self.session.delete(w)
        self.session.commit()

    def list_for(self, doctor_id: Optional[str] = None, date: Optional[str] = None) -> List[WaitingListEntry]:
        query = select(WaitingListRecord)
        if doctor_id is not None:
            query = query.where(WaitingListRecord.preferred_doctor_id == doctor_id)
        if date is not None:
            query = query.where(WaitingListRecord.preferred_date == date)
        rows = self.session.exec(
            query.order_by(WaitingListRecord.priority_weight.desc(), WaitingListRecord.added_at)
        ).all()
        return [self._to_domain(r) for r in rows]
