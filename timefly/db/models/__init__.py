# Models package (re-export table modules for stable imports)
from .scheduling.doctor import DoctorRecord
from .scheduling.appointment import AppointmentRecord
from .scheduling.availability import DoctorAvailabilityRecord, BlockedSlotRecord
from .scheduling.waiting_list import WaitingListRecord
from .scheduling.queue_counter import QueueCounterRecord

__all__ = [
    "DoctorRecord",
    "AppointmentRecord",
    "DoctorAvailabilityRecord",
    "BlockedSlotRecord",
    "WaitingListRecord",
    "QueueCounterRecord",
]
