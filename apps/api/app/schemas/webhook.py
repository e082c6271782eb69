"""Calendar webhook and integration schemas."""

from datetime import datetime, timezone
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Ritten payload
# =============================================================================

class RittenAttendee(BaseModel):
    name: str
    email: str | None = None


class RittenAppointment(BaseModel):
    id: str
    title: str
    description: str | None = None
    start_datetime: datetime
    end_datetime: datetime
    attendees: list[RittenAttendee] = Field(default_factory=list)
    location: str | None = None
    notes: str | None = None

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Ritten sends offsets; bare timestamps are read as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class RittenOrganization(BaseModel):
    id: str
    name: str


class RittenWebhookPayload(BaseModel):
    """Appointment callback sent by Ritten.io."""
    event_type: str
    event_id: str
    calendar_id: str
    appointment: RittenAppointment
    organization: RittenOrganization | None = None


class WebhookResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    processed: bool
    trips_created: int = Field(alias="tripsCreated")
    outcome: str


# =============================================================================
# Integration admin
# =============================================================================

class TripCreationRuleCreate(BaseModel):
    name: str = Field("Default rule", min_length=1, max_length=255)
    pickup_offset_minutes: int = Field(0, ge=-1440, le=1440)
    default_pickup_location: str | None = None
    trip_type: Literal["one_way", "round_trip"] = "one_way"
    requires_approval: bool = True


class TripCreationRuleRead(BaseModel):
    id: UUID
    integration_id: UUID
    name: str
    pickup_offset_minutes: int
    default_pickup_location: str | None
    trip_type: str
    requires_approval: bool
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class WebhookIntegrationCreate(BaseModel):
    """
    Create a webhook integration.

    Pass secret_key to use a known secret, or generate_secret=True to have
    one generated. Either way it is only returned in the create response.
    """
    organization_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    provider: Literal["ritten", "google_calendar", "outlook", "generic"]
    secret_key: str | None = Field(None, min_length=8, max_length=255)
    generate_secret: bool = False
    filter_keywords: list[str] = Field(default_factory=list)
    filter_attendees: list[str] = Field(default_factory=list)
    rule: TripCreationRuleCreate | None = None


class WebhookIntegrationRead(BaseModel):
    id: UUID
    organization_id: UUID
    name: str
    provider: str
    filter_keywords: list[str]
    filter_attendees: list[str]
    is_active: bool
    has_secret: bool
    created_at: datetime
    rules: list[TripCreationRuleRead] = Field(default_factory=list)


class WebhookIntegrationCreateResponse(WebhookIntegrationRead):
    secret_key: str | None = None  # Shown once


class WebhookEventLogRead(BaseModel):
    id: UUID
    integration_id: UUID
    organization_id: UUID
    event_type: str
    external_event_id: str | None
    event_data: dict
    status: str
    outcome: str | None
    trips_created: list[str]
    reason: str | None
    error_message: str | None
    created_at: datetime
    processed_at: datetime | None

    model_config = {"from_attributes": True}
