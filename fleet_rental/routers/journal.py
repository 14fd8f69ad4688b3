# fleet_rental/routers/journal.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from fleet_rental.database import get_db
from fleet_rental.models.workflow_journal import WorkflowJournal
from fleet_rental.schemas.journal import WorkflowJournalOut
from typing import Optional

router = APIRouter()


@router.get("/journal", response_model=list[WorkflowJournalOut], summary="Workflow journal — filterable")
def get_journal(
    action: Optional[str] = None,
    status: Optional[str] = None,
    quote_id: Optional[str] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    """Allocation workflow runs, newest first. `status` is started, committed, compensated or partial."""
    q = db.query(WorkflowJournal)
    if action:
        q = q.filter(WorkflowJournal.action == action)
    if status:
        q = q.filter(WorkflowJournal.status == status)
    if quote_id:
        q = q.filter(WorkflowJournal.quote_id == quote_id)
    return q.order_by(WorkflowJournal.started_at.desc()).limit(limit).all()
