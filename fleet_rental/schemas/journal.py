# fleet_rental/schemas/journal.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class WorkflowJournalOut(BaseModel):
    id: int
    action: str
    quote_id: Optional[str]
    reservation_id: Optional[str]
    vehicle_id: Optional[str]
    status: str
    steps_applied: Optional[str]
    error: Optional[str]
    started_at: datetime
    finished_at: Optional[datetime]

    class Config:
        from_attributes = True
