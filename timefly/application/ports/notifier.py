from typing import Protocol

from ...domain.models import Appointment


class Notifier(Protocol):
    def notify(self, event: str, appointment: Appointment) -> None:
        ...
