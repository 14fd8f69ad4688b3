# fleet_rental/schemas/vehicle.py
"""
Vehicle-side entity records as returned by the entity API:
cars, vehicle types, locations and the post-return refurbishment workflow.
"""

from enum import Enum
from pydantic import BaseModel
from typing import Optional


class EntityRecord(BaseModel):
    """Common config for every record loaded from the entity API."""

    id: str

    class Config:
        extra = "ignore"
        coerce_numbers_to_str = True


class VehicleStatus(str, Enum):
    AVAILABLE = "available"
    ON_HIRE = "on_hire"
    CHECKED_OUT = "checked_out"
    MAINTENANCE_REQUIRED = "maintenance_required"
    IN_INSPECTION = "in_inspection"
    IN_CLEANING = "in_cleaning"
    IN_DRIVING_CHECK = "in_driving_check"
    INACTIVE = "inactive"


class WorkflowStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class WorkflowStage(str, Enum):
    RETURNED = "returned"
    WASHING = "washing"
    DRIVING_TEST = "driving_test"
    SERVICING = "servicing"
    APPROVAL = "approval"
    READY_FOR_HIRE = "ready_for_hire"


class Vehicle(EntityRecord):
    fleet_id: Optional[str] = None
    license_plate: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    category: Optional[str] = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    active: Optional[bool] = True
    mileage: Optional[float] = None
    fuel_level: Optional[float] = None
    # GPS telemetry, written by the GPS sync collaborator
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None
    gps_speed: Optional[float] = None
    gps_heading: Optional[float] = None
    gps_engine_on: Optional[bool] = None
    gps_last_update: Optional[str] = None


class VehicleType(EntityRecord):
    name: str
    active: Optional[bool] = True


class Location(EntityRecord):
    name: str
    transport_fee: float = 0.0
    active: Optional[bool] = True


class VehicleWorkflow(EntityRecord):
    car_id: str
    workflow_status: WorkflowStatus
    current_stage: Optional[WorkflowStage] = None
    damage_flagged: bool = False
