"""SQLAlchemy ORM models."""

from app.db.models.auth import FeatureFlag, Membership, Organization, RolePermission, User
from app.db.models.clients import Client, ClientGroup, ClientGroupMembership
from app.db.models.integrations import TripCreationRule, WebhookEventLog, WebhookIntegration
from app.db.models.trips import RecurringTrip, Trip

__all__ = [
    "Client",
    "ClientGroup",
    "ClientGroupMembership",
    "FeatureFlag",
    "Membership",
    "Organization",
    "RecurringTrip",
    "RolePermission",
    "Trip",
    "TripCreationRule",
    "User",
    "WebhookEventLog",
    "WebhookIntegration",
]
