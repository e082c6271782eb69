"""Trip schemas - Pydantic models for trips API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from app.db.enums import TripStatus


class TripRead(BaseModel):
    """Schema for reading a trip."""
    id: UUID
    organization_id: UUID
    client_id: UUID | None
    client_group_id: UUID | None
    client_group_name: str | None
    pickup_address: str
    dropoff_address: str
    scheduled_pickup_time: datetime
    trip_type: str
    trip_nickname: str | None
    status: str
    recurring_trip_id: UUID | None
    notes: str | None
    source: str
    external_event_id: str | None
    actual_pickup_time: datetime | None
    actual_dropoff_time: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TripStatusUpdate(BaseModel):
    """Request to move a trip to a new status."""
    status: TripStatus
