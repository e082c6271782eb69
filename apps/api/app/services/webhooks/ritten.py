"""Ritten.io calendar webhook handler.

Handles:
- Payload validation against the Ritten appointment schema
- Keyword, attendee and lead-time filtering
- Rule selection and client matching
- Trip creation (one trip per appointment)
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import NamedTuple
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.enums import TripSource, TripStatus
from app.db.models import Client, Trip, TripCreationRule, WebhookIntegration
from app.schemas.webhook import RittenAppointment, RittenWebhookPayload
from app.services.webhooks.base import (
    ClientNotFound,
    Created,
    Duplicate,
    Error,
    Filtered,
    WebhookOutcome,
)

logger = logging.getLogger(__name__)


class FilterDecision(NamedTuple):
    create: bool
    reason: str | None = None


# =============================================================================
# Filtering
# =============================================================================

def should_create_trip_for_event(
    appointment: RittenAppointment,
    *,
    filter_keywords: list[str] | None,
    filter_attendees: list[str] | None,
    now: datetime,
    min_lead_hours: float,
) -> FilterDecision:
    """
    Decide whether an appointment becomes a trip.

    Checks run in order and the first failure wins:
    keywords, attendees, then lead time (start - now >= min_lead_hours).
    """
    if filter_keywords:
        haystack = f"{appointment.title} {appointment.description or ''}".lower()
        if not any(keyword.lower() in haystack for keyword in filter_keywords):
            return FilterDecision(False, "No matching keywords found")

    if filter_attendees:
        attendee_names = {attendee.name.lower() for attendee in appointment.attendees}
        if not any(name.lower() in attendee_names for name in filter_attendees):
            return FilterDecision(False, "No matching attendees found")

    if appointment.start_datetime - now < timedelta(hours=min_lead_hours):
        return FilterDecision(
            False,
            f"Appointment too soon (less than {min_lead_hours:g} hours advance notice)",
        )

    return FilterDecision(True)


# =============================================================================
# Lookups
# =============================================================================

def select_rule(db: Session, integration_id: UUID) -> TripCreationRule | None:
    """Oldest active rule wins when several are configured."""
    return (
        db.query(TripCreationRule)
        .filter(
            TripCreationRule.integration_id == integration_id,
            TripCreationRule.is_active.is_(True),
        )
        .order_by(TripCreationRule.created_at, TripCreationRule.id)
        .first()
    )


def find_client_by_name(db: Session, org_id: UUID, name: str) -> Client | None:
    """Exact case-insensitive "first last" match among active clients."""
    wanted = name.strip().lower()
    if not wanted:
        return None
    clients = (
        db.query(Client)
        .filter(Client.organization_id == org_id, Client.is_active.is_(True))
        .order_by(Client.created_at, Client.id)
        .all()
    )
    for client in clients:
        if f"{client.first_name} {client.last_name}".lower() == wanted:
            return client
    return None


def find_trip_for_event(
    db: Session,
    integration_id: UUID,
    event_id: str,
) -> Trip | None:
    """Trip already created for this (integration, event_id), if any."""
    return (
        db.query(Trip)
        .filter(
            Trip.webhook_integration_id == integration_id,
            Trip.external_event_id == event_id,
        )
        .order_by(Trip.created_at, Trip.id)
        .first()
    )


# =============================================================================
# Handler
# =============================================================================

class RittenWebhookHandler:
    def process(
        self,
        db: Session,
        integration: WebhookIntegration,
        payload: dict,
        now: datetime,
    ) -> WebhookOutcome:
        """
        Filter an appointment and create at most one trip from it.

        The trip is added and flushed but not committed; the caller commits
        it together with the event log update.
        """
        try:
            event = RittenWebhookPayload.model_validate(payload)
        except ValidationError as exc:
            return Error(cause=f"Invalid Ritten payload ({exc.error_count()} errors)")

        appointment = event.appointment
        decision = should_create_trip_for_event(
            appointment,
            filter_keywords=integration.filter_keywords,
            filter_attendees=integration.filter_attendees,
            now=now,
            min_lead_hours=settings.WEBHOOK_MIN_LEAD_HOURS,
        )
        if not decision.create:
            return Filtered(reason=decision.reason or "Filtered")

        if settings.WEBHOOK_DEDUPE_ENABLED:
            existing = find_trip_for_event(db, integration.id, event.event_id)
            if existing:
                return Duplicate(trip_id=existing.id)

        rule = select_rule(db, integration.id)
        if not rule:
            return Error(cause="No active trip creation rules found")

        if not appointment.attendees:
            return ClientNotFound(reason="Appointment has no attendees")
        client = find_client_by_name(
            db, integration.organization_id, appointment.attendees[0].name
        )
        if not client:
            return ClientNotFound(reason="No matching client found for appointment")

        trip = Trip(
            organization_id=integration.organization_id,
            client_id=client.id,
            pickup_address=rule.default_pickup_location or appointment.location or "",
            dropoff_address=appointment.location or "",
            scheduled_pickup_time=appointment.start_datetime
            + timedelta(minutes=rule.pickup_offset_minutes),
            trip_type=rule.trip_type,
            status=(
                TripStatus.SCHEDULED.value
                if rule.requires_approval
                else TripStatus.CONFIRMED.value
            ),
            notes=f"Auto-created from Ritten appointment: {appointment.title}",
            source=TripSource.WEBHOOK.value,
            webhook_integration_id=integration.id,
            external_event_id=event.event_id,
        )
        db.add(trip)
        db.flush()

        logger.info(
            "Created trip from Ritten appointment",
            extra={
                "integration_id": str(integration.id),
                "org_id": str(integration.organization_id),
            },
        )
        return Created(trip_id=trip.id)
