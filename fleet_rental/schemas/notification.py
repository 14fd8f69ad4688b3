# fleet_rental/schemas/notification.py
from enum import Enum
from pydantic import BaseModel
from typing import Optional

from fleet_rental.schemas.vehicle import EntityRecord


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(EntityRecord):
    type: Optional[str] = None
    title: str
    message: Optional[str] = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    read: bool = False
    action_required: bool = False
    expires_at: Optional[str] = None
    created_date: Optional[str] = None


class NotificationFeedOut(BaseModel):
    unread_count: int
    notifications: list[Notification]
    last_refreshed: Optional[str] = None
