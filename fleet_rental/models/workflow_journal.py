# fleet_rental/models/workflow_journal.py
"""
Workflow journal table — one row per allocation-workflow action
(quote conversion, vehicle allocation, calendar booking).
Records which entity-API steps were applied and how the action ended.
Used by allocation_service for idempotent quote conversion and by the journal router.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from fleet_rental.database import Base


class WorkflowJournal(Base):
    __tablename__ = "workflow_journal"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(50), nullable=False, index=True)     # convert_quote | allocate_vehicle | calendar_booking
    quote_id = Column(String(100), index=True)
    reservation_id = Column(String(100), index=True)
    vehicle_id = Column(String(100))
    status = Column(String(20), nullable=False, index=True)     # started | committed | compensated | partial
    steps_applied = Column(Text)                                # comma-separated step names
    error = Column(Text)
    started_at = Column(DateTime, nullable=False, index=True)
    finished_at = Column(DateTime)

    def __repr__(self):
        return f"<WorkflowJournal {self.id} action={self.action} status={self.status}>"
