# Fleet Rental local database models
# Import all models here for SQLAlchemy discovery

from fleet_rental.models.workflow_journal import WorkflowJournal   # noqa
