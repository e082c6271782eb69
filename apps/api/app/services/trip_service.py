"""Trip service - reads, deletes and status changes for single trips."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.trip_status_rules import allowed_next_statuses, is_valid_transition
from app.db.enums import TripStatus
from app.db.models import Trip
from app.db.types import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 200


def list_trips(
    db: Session,
    org_id: UUID,
    *,
    recurring_trip_id: UUID | None = None,
    status: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
) -> list[Trip]:
    """List trips for an organization ordered by pickup time."""
    query = db.query(Trip).filter(Trip.organization_id == org_id)
    if recurring_trip_id:
        query = query.filter(Trip.recurring_trip_id == recurring_trip_id)
    if status:
        query = query.filter(Trip.status == status)
    if start:
        query = query.filter(Trip.scheduled_pickup_time >= start)
    if end:
        query = query.filter(Trip.scheduled_pickup_time < end)
    return query.order_by(Trip.scheduled_pickup_time, Trip.id).limit(limit).all()


def get_trip(db: Session, org_id: UUID, trip_id: UUID) -> Trip | None:
    """Get a trip scoped to an organization."""
    return db.query(Trip).filter(
        Trip.id == trip_id,
        Trip.organization_id == org_id,
    ).first()


def delete_trip(db: Session, trip: Trip) -> None:
    db.delete(trip)
    db.commit()


def update_trip_status(
    db: Session,
    trip: Trip,
    new_status: str,
    now: datetime | None = None,
) -> Trip:
    """
    Move a trip to a new status.

    Setting the current status again is a no-op. in_progress stamps the
    actual pickup time and completed stamps the actual drop-off time.

    Raises:
        ValueError: Transition not allowed from the current status
    """
    if trip.status == new_status:
        return trip
    if not is_valid_transition(trip.status, new_status):
        allowed = allowed_next_statuses(trip.status)
        raise ValueError(
            f"Cannot change status from {trip.status} to {new_status}. "
            f"Allowed: {', '.join(allowed) if allowed else 'none'}"
        )

    now = now or utcnow()
    old_status = trip.status
    trip.status = new_status
    if new_status == TripStatus.IN_PROGRESS.value:
        trip.actual_pickup_time = now
    elif new_status == TripStatus.COMPLETED.value:
        trip.actual_dropoff_time = now
    db.commit()
    db.refresh(trip)

    logger.info(
        "Trip status changed %s -> %s",
        old_status,
        new_status,
        extra={"org_id": str(trip.organization_id)},
    )
    return trip
