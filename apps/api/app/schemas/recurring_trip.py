"""Recurring trip schemas.

Request bodies use the camelCase keys the dispatch UI sends.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.db.enums import DeleteScope

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class RecurringTripCreate(BaseModel):
    """Create one template per selected day and expand it into trips."""
    model_config = ConfigDict(populate_by_name=True)

    selection_type: Literal["individual", "group"] = Field(alias="selectionType")
    client_id: UUID | None = Field(default=None, alias="clientId")
    client_group_id: UUID | None = Field(default=None, alias="clientGroupId")
    organization_id: UUID = Field(alias="organizationId")
    pickup_address: str = Field(min_length=1, alias="pickupAddress")
    dropoff_address: str = Field(min_length=1, alias="dropoffAddress")
    scheduled_time: str = Field(pattern=HHMM_PATTERN, alias="scheduledTime")
    frequency: str
    days_of_week: list[str | int] = Field(default_factory=list, alias="daysOfWeek")
    duration: str | int  # Number of weeks
    trip_type: Literal["round_trip", "one_way"] = Field(alias="tripType")
    trip_nickname: str | None = Field(default=None, max_length=255, alias="tripNickname")
    notes: str | None = None


class RecurringTripCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    recurring_trip_id: UUID = Field(alias="recurringTripId")
    recurring_trip_ids: list[UUID] = Field(alias="recurringTripIds")
    trip_instances_created: int = Field(alias="tripInstancesCreated")
    message: str


class RecurringTripRead(BaseModel):
    """Template with its count of not-yet-occurred trips."""
    id: UUID
    organization_id: UUID
    client_id: UUID | None
    client_group_id: UUID | None
    day_of_week: int
    scheduled_time: str
    pickup_address: str
    dropoff_address: str
    is_round_trip: bool
    frequency: str
    duration_weeks: int
    trip_nickname: str | None
    notes: str | None
    is_active: bool
    created_at: datetime
    future_instance_count: int = 0

    model_config = {"from_attributes": True}


class RecurringTripDelete(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scope: DeleteScope
    trip_instance_id: UUID | None = Field(default=None, alias="tripInstanceId")


class RecurringTripUpdates(BaseModel):
    """Fields that may be changed on a series or a single instance.

    Unknown keys are rejected so the series link can never be rewritten.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    pickup_address: str | None = Field(default=None, min_length=1, alias="pickupAddress")
    dropoff_address: str | None = Field(default=None, min_length=1, alias="dropoffAddress")
    scheduled_time: str | None = Field(default=None, pattern=HHMM_PATTERN, alias="scheduledTime")
    trip_type: Literal["round_trip", "one_way"] | None = Field(default=None, alias="tripType")
    trip_nickname: str | None = Field(default=None, max_length=255, alias="tripNickname")
    notes: str | None = None


class RecurringTripModify(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scope: DeleteScope
    trip_instance_id: UUID | None = Field(default=None, alias="tripInstanceId")
    updates: RecurringTripUpdates


class RecurringTripScopeResponse(BaseModel):
    success: bool
    scope: DeleteScope
    count: int
