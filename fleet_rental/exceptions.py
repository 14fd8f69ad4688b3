# fleet_rental/exceptions.py
"""
Error taxonomy shared by services and routers.
Validation and not-found errors are raised before any entity write.
"""

from typing import Optional


class FleetError(Exception):
    """Base class for every error raised by the fleet services."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class ValidationError(FleetError):
    """Missing required field or malformed input."""

    status_code = 422


class InvalidDateFormat(ValidationError):
    pass


class QuoteNotConvertible(ValidationError):
    pass


class NotFoundError(FleetError):
    """No matching entity (or no available vehicle) for the request."""

    status_code = 404


class AllocationConflict(FleetError):
    """Vehicle already booked for the window, or the record changed underneath us."""

    status_code = 409


class RemoteWriteError(FleetError):
    """Entity API call failed. Earlier steps of the same action were rolled back."""

    status_code = 502


class PartialFailure(FleetError):
    """
    A multi-step action failed and could not be fully rolled back.
    `applied` lists the steps whose effects are still in the entity store.
    """

    status_code = 500

    def __init__(self, message: str, applied: list[str], detail: Optional[dict] = None):
        super().__init__(message, detail)
        self.applied = applied
