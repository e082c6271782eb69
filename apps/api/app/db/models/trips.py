"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.db.base import Base
from app.db.enums import DEFAULT_TRIP_STATUS, TripSource, TripType
from app.db.types import utcnow


class RecurringTrip(Base):
    """
    Weekly template that is expanded into dated trips.

    Exactly one of client_id / client_group_id is set.
    day_of_week uses Sunday=0.
    """

    __tablename__ = "recurring_trips"
    __table_args__ = (
        CheckConstraint(
            "(client_id IS NULL) <> (client_group_id IS NULL)",
            name="ck_recurring_trips_one_rider",
        ),
        CheckConstraint(
            "day_of_week BETWEEN 0 AND 6",
            name="ck_recurring_trips_day_of_week",
        ),
        Index("idx_recurring_trips_org_active", "organization_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=True,
    )
    client_group_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("client_groups.id", ondelete="CASCADE"),
        nullable=True,
    )
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String(5), nullable=False)
    pickup_address: Mapped[str] = mapped_column(Text, nullable=False)
    dropoff_address: Mapped[str] = mapped_column(Text, nullable=False)
    is_round_trip: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), default="weekly", nullable=False)
    duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
    trip_nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )


class Trip(Base):
    """A single dated pickup."""

    __tablename__ = "trips"
    __table_args__ = (
        Index("idx_trips_org_pickup", "organization_id", "scheduled_pickup_time"),
        Index("idx_trips_recurring", "recurring_trip_id", "scheduled_pickup_time"),
        Index("idx_trips_webhook_event", "webhook_integration_id", "external_event_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
    )
    client_group_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("client_groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Snapshot at creation; later group renames do not rewrite history
    client_group_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pickup_address: Mapped[str] = mapped_column(Text, nullable=False)
    dropoff_address: Mapped[str] = mapped_column(Text, nullable=False)
    scheduled_pickup_time: Mapped[datetime] = mapped_column(nullable=False)
    trip_type: Mapped[str] = mapped_column(
        String(20), default=TripType.ONE_WAY.value, nullable=False
    )
    trip_nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_TRIP_STATUS.value, nullable=False
    )
    recurring_trip_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("recurring_trips.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(
        String(20), default=TripSource.MANUAL.value, nullable=False
    )
    webhook_integration_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("webhook_integrations.id", ondelete="SET NULL"),
        nullable=True,
    )
    external_event_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    actual_pickup_time: Mapped[datetime | None] = mapped_column(nullable=True)
    actual_dropoff_time: Mapped[datetime | None] = mapped_column(nullable=True)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, nullable=False
    )

    @validates("recurring_trip_id")
    def _validate_recurring_trip_id(self, key, value):
        current = self.__dict__.get("recurring_trip_id")
        if current is not None and value != current:
            raise ValueError("recurring_trip_id cannot be changed once set")
        return value
