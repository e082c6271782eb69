"""Calendar webhook enums."""

from enum import Enum


class WebhookProvider(str, Enum):
    RITTEN = "ritten"
    GOOGLE_CALENDAR = "google_calendar"
    OUTLOOK = "outlook"
    GENERIC = "generic"


class WebhookEventStatus(str, Enum):
    """
    Processing status of a webhook event log row.

    Written as PENDING before processing and updated once afterwards.
    """

    PENDING = "pending"
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class WebhookOutcomeKind(str, Enum):
    """Result of processing one webhook delivery."""

    CREATED = "created"
    FILTERED = "filtered"
    SKIPPED = "skipped"
    DUPLICATE = "duplicate"
    CLIENT_NOT_FOUND = "client_not_found"
    ERROR = "error"
