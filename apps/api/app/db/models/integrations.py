"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import TripType, WebhookEventStatus
from app.db.types import utcnow


class WebhookIntegration(Base):
    """
    A configured external calendar source.

    The HMAC secret is stored Fernet-encrypted and never returned by the API.
    """

    __tablename__ = "webhook_integrations"
    __table_args__ = (Index("idx_webhook_integrations_org", "organization_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    secret_key_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    filter_keywords: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    filter_attendees: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    rules: Mapped[list["TripCreationRule"]] = relationship(
        back_populates="integration",
        cascade="all, delete-orphan",
    )


class TripCreationRule(Base):
    """Maps a filtered appointment onto concrete trip fields."""

    __tablename__ = "trip_creation_rules"
    __table_args__ = (
        Index("idx_trip_creation_rules_integration", "integration_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    integration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("webhook_integrations.id", ondelete="CASCADE"),
        nullable=False,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), default="Default rule", nullable=False)
    pickup_offset_minutes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    default_pickup_location: Mapped[str | None] = mapped_column(Text, nullable=True)
    trip_type: Mapped[str] = mapped_column(
        String(20), default=TripType.ONE_WAY.value, nullable=False
    )
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    integration: Mapped["WebhookIntegration"] = relationship(back_populates="rules")


class WebhookEventLog(Base):
    """
    Audit row for one webhook delivery.

    Inserted as pending, then finalized exactly once.
    """

    __tablename__ = "webhook_event_logs"
    __table_args__ = (
        Index("idx_webhook_event_logs_org_created", "organization_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    integration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("webhook_integrations.id", ondelete="CASCADE"),
        nullable=False,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    external_event_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    event_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=WebhookEventStatus.PENDING.value, nullable=False
    )
    outcome: Mapped[str | None] = mapped_column(String(30), nullable=True)
    trips_created: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
