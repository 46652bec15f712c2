# timefly/db/models/scheduling/queue_counter.py
from sqlmodel import SQLModel, Field

class QueueCounterRecord(SQLModel, table=True):
    __tablename__ = "queue_counters"
    # Highest queue number ever issued for the date; only moves up
    date: str = Field(primary_key=True, max_length=10)
    last_number: int = Field(default=0)
