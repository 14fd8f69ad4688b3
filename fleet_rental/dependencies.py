# fleet_rental/dependencies.py
"""FastAPI dependencies for the shared entity client and the polled feeds (created on startup)."""

from fastapi import Request

from fleet_rental.services.entity_client import EntityClient
from fleet_rental.services.gps_service import GpsFeed
from fleet_rental.services.notification_service import NotificationFeed


def get_entity_client(request: Request) -> EntityClient:
    return request.app.state.entity_client


def get_notification_feed(request: Request) -> NotificationFeed:
    return request.app.state.notification_feed


def get_gps_feed(request: Request) -> GpsFeed:
    return request.app.state.gps_feed
