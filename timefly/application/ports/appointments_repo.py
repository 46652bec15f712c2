from typing import List, Optional

from ...domain.models import Appointment


class AppointmentsRepository:
    """Appointment store.

    ``create_if_free`` and ``move_if_free`` are the only writes that place an
    appointment on a slot. Each one checks occupancy and assigns the queue
    number in a single atomic step and raises ``SlotTakenError`` when another
    active appointment already holds (doctor, date, time).
    """

    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        ...

    def list_for_date(self, date: str, doctor_id: Optional[str] = None) -> List[Appointment]:
        ...

    def list_between(self, date_from: str, date_to: str) -> List[Appointment]:
        ...

    def create_if_free(self, appointment: Appointment) -> Appointment:
        ...

    def move_if_free(self, appointment_id: str, date: str, time: str, priority: Optional[str] = None) -> Appointment:
        ...

    def update_status(self, appointment_id: str, status: str, reason: Optional[str] = None) -> Optional[Appointment]:
        ...
