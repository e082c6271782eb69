"""Pydantic schemas for API request/response models."""

from app.schemas.auth import TokenPayload, UserSession
from app.schemas.recurring_trip import (
    RecurringTripCreate,
    RecurringTripCreateResponse,
    RecurringTripDelete,
    RecurringTripModify,
    RecurringTripRead,
    RecurringTripScopeResponse,
    RecurringTripUpdates,
)
from app.schemas.trip import TripRead, TripStatusUpdate
from app.schemas.webhook import (
    RittenWebhookPayload,
    TripCreationRuleCreate,
    TripCreationRuleRead,
    WebhookEventLogRead,
    WebhookIntegrationCreate,
    WebhookIntegrationCreateResponse,
    WebhookIntegrationRead,
    WebhookResponse,
)

__all__ = [
    "RecurringTripCreate",
    "RecurringTripCreateResponse",
    "RecurringTripDelete",
    "RecurringTripModify",
    "RecurringTripRead",
    "RecurringTripScopeResponse",
    "RecurringTripUpdates",
    "RittenWebhookPayload",
    "TokenPayload",
    "TripCreationRuleCreate",
    "TripCreationRuleRead",
    "TripRead",
    "TripStatusUpdate",
    "UserSession",
    "WebhookEventLogRead",
    "WebhookIntegrationCreate",
    "WebhookIntegrationCreateResponse",
    "WebhookIntegrationRead",
    "WebhookResponse",
]
