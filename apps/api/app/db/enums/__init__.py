"""Enum definitions for application constants."""

from app.db.enums.auth import ROLES_CROSS_ORG, Role
from app.db.enums.trips import (
    DEFAULT_TRIP_STATUS,
    DeleteScope,
    RecurrenceFrequency,
    SelectionType,
    TripSource,
    TripStatus,
    TripType,
)
from app.db.enums.webhooks import (
    WebhookEventStatus,
    WebhookOutcomeKind,
    WebhookProvider,
)

__all__ = [
    "DEFAULT_TRIP_STATUS",
    "DeleteScope",
    "ROLES_CROSS_ORG",
    "RecurrenceFrequency",
    "Role",
    "SelectionType",
    "TripSource",
    "TripStatus",
    "TripType",
    "WebhookEventStatus",
    "WebhookOutcomeKind",
    "WebhookProvider",
]
