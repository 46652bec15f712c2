from typing import List, Optional

from ...domain.models import WaitingListEntry


class WaitingListRepository:
    def add(self, entry: WaitingListEntry) -> WaitingListEntry:
        ...

    def next_for(self, doctor_id: str, date: str) -> Optional[WaitingListEntry]:
        ...

    def remove(self, entry_id: str) -> None:
        ...

    def list_for(self, doctor_id: Optional[str] = None, date: Optional[str] = None) -> List[WaitingListEntry]:
        ...
