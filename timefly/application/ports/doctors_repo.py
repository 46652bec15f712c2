from typing import List, Optional

from ...domain.models import AvailabilityOverride, Doctor


class DoctorsRepository:
    def get(self, doctor_id: str) -> Optional[Doctor]:
        ...

    def list_all(self) -> List[Doctor]:
        ...

    def create(self, doctor: Doctor) -> Doctor:
        ...

    def update(self, doctor: Doctor) -> Optional[Doctor]:
        ...

    def list_overrides(self, date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[AvailabilityOverride]:
        ...

    def set_override(self, doctor_id: str, date: str, available: bool) -> AvailabilityOverride:
        ...

    def list_blocked_times(self, doctor_id: str, date: str) -> List[str]:
        ...

    def set_blocked(self, doctor_id: str, date: str, time: str, blocked: bool) -> None:
        ...
