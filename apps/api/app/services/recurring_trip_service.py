"""Recurring trip service - expands weekly templates into dated trips.

Handles:
- Occurrence computation (pure, takes an explicit "now")
- Template creation with one template per selected weekday
- Series deletion and modification with single / all_future scope

Every multi-row mutation commits once; any database error rolls the
whole batch back.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.trip_status_rules import OPEN_TRIP_STATUSES
from app.db.enums import (
    DEFAULT_TRIP_STATUS,
    DeleteScope,
    RecurrenceFrequency,
    SelectionType,
    TripSource,
    TripType,
)
from app.db.models import Client, ClientGroup, Organization, RecurringTrip, Trip
from app.db.types import utcnow

logger = logging.getLogger(__name__)

# Sunday=0, matching the dispatch UI and stored day_of_week values
DAY_NAMES = [
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
]


# =============================================================================
# Types
# =============================================================================

class RecurringTripBatch(NamedTuple):
    """Result of creating recurring trips."""
    templates: list[RecurringTrip]
    trips_created: int


# =============================================================================
# Occurrence computation
# =============================================================================

def parse_day(value: str | int) -> int:
    """Map a day name (any case) or 0-6 index to Sunday=0 numbering."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid day of week: {value!r}")
    if isinstance(value, int):
        index = value
    else:
        text = value.strip().lower()
        if text in DAY_NAMES:
            return DAY_NAMES.index(text)
        if not text.isdigit():
            raise ValueError(f"Invalid day of week: {value!r}")
        index = int(text)
    if not 0 <= index <= 6:
        raise ValueError(f"Invalid day of week: {value!r}")
    return index


def parse_hhmm(value: str) -> time:
    """Parse an HH:MM string."""
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except (AttributeError, TypeError, ValueError):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")


def sunday_weekday(day: date) -> int:
    """date.weekday() is Monday=0; shift to Sunday=0."""
    return (day.weekday() + 1) % 7


def get_timezone(name: str | None) -> ZoneInfo:
    """Get a ZoneInfo timezone with fallback to the configured default."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using default", name)
    return ZoneInfo(settings.DEFAULT_ORG_TIMEZONE)


def compute_occurrences(
    day_of_week: str | int,
    scheduled_time: str,
    duration_weeks: int,
    now: datetime,
    tz: ZoneInfo,
) -> list[datetime]:
    """
    Pickup timestamps for a weekly template.

    Week 0 starts at the next matching weekday on or after today (in tz).
    An occurrence whose full local timestamp is already before now is
    skipped, so the result holds at most duration_weeks UTC datetimes,
    seven local days apart.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    if duration_weeks < 1:
        return []

    target_day = parse_day(day_of_week)
    pickup_time = parse_hhmm(scheduled_time)
    today = now.astimezone(tz).date()
    days_until_target = (target_day - sunday_weekday(today) + 7) % 7

    occurrences: list[datetime] = []
    for week in range(duration_weeks):
        occurrence_date = today + timedelta(days=days_until_target + week * 7)
        local_pickup = datetime.combine(occurrence_date, pickup_time, tzinfo=tz)
        if local_pickup < now:
            continue
        occurrences.append(local_pickup.astimezone(timezone.utc))
    return occurrences


def parse_duration_weeks(value: str | int) -> int:
    """Validate the duration field (a whole number of weeks)."""
    try:
        weeks = int(str(value).strip())
    except ValueError:
        raise ValueError("Duration must be a whole number of weeks")
    if not 1 <= weeks <= settings.MAX_RECURRING_WEEKS:
        raise ValueError(
            f"Duration must be between 1 and {settings.MAX_RECURRING_WEEKS} weeks"
        )
    return weeks


def resolve_days(frequency: str, days_of_week: list[str | int]) -> list[int]:
    """Selected weekdays for a frequency, de-duplicated in request order."""
    if frequency == RecurrenceFrequency.DAILY.value:
        return list(range(7))
    if frequency != RecurrenceFrequency.WEEKLY.value:
        raise ValueError(f"Unsupported frequency: {frequency}")
    if not days_of_week:
        raise ValueError("At least one day of the week is required")

    days: list[int] = []
    for value in days_of_week:
        day = parse_day(value)
        if day not in days:
            days.append(day)
    return days


# =============================================================================
# Queries
# =============================================================================

def get_org_timezone(db: Session, org_id: UUID) -> ZoneInfo:
    org = db.query(Organization).filter(Organization.id == org_id).first()
    return get_timezone(org.timezone if org else None)


def get_recurring_trip(
    db: Session,
    org_id: UUID,
    recurring_trip_id: UUID,
) -> RecurringTrip | None:
    """Get a template scoped to an organization."""
    return db.query(RecurringTrip).filter(
        RecurringTrip.id == recurring_trip_id,
        RecurringTrip.organization_id == org_id,
    ).first()


def list_recurring_trips(
    db: Session,
    org_id: UUID,
    now: datetime | None = None,
) -> list[tuple[RecurringTrip, int]]:
    """Active templates with their count of future instances."""
    now = now or utcnow()
    future_counts = (
        db.query(
            Trip.recurring_trip_id.label("recurring_trip_id"),
            func.count(Trip.id).label("future_count"),
        )
        .filter(
            Trip.organization_id == org_id,
            Trip.recurring_trip_id.is_not(None),
            Trip.scheduled_pickup_time >= now,
        )
        .group_by(Trip.recurring_trip_id)
        .subquery()
    )
    rows = (
        db.query(RecurringTrip, func.coalesce(future_counts.c.future_count, 0))
        .outerjoin(future_counts, future_counts.c.recurring_trip_id == RecurringTrip.id)
        .filter(
            RecurringTrip.organization_id == org_id,
            RecurringTrip.is_active.is_(True),
        )
        .order_by(RecurringTrip.created_at.desc(), RecurringTrip.id)
        .all()
    )
    return [(template, int(count)) for template, count in rows]


def _get_series_instance(
    db: Session,
    template: RecurringTrip,
    trip_instance_id: UUID | None,
) -> Trip:
    if trip_instance_id is None:
        raise ValueError("tripInstanceId is required for single scope")
    trip = db.query(Trip).filter(
        Trip.id == trip_instance_id,
        Trip.recurring_trip_id == template.id,
        Trip.organization_id == template.organization_id,
    ).first()
    if not trip:
        raise LookupError("Trip instance not found in this series")
    return trip


# =============================================================================
# Create
# =============================================================================

def create_recurring_trips(
    db: Session,
    *,
    org_id: UUID,
    user_id: UUID | None,
    selection_type: str,
    client_id: UUID | None,
    client_group_id: UUID | None,
    pickup_address: str,
    dropoff_address: str,
    scheduled_time: str,
    frequency: str,
    days_of_week: list[str | int],
    duration: str | int,
    trip_type: str,
    trip_nickname: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> RecurringTripBatch:
    """
    Create one template per selected day and insert its future trips.

    Raises:
        ValueError: Invalid selection, frequency, day, time or duration
        LookupError: Client or client group not found in the organization
    """
    now = now or utcnow()

    if selection_type == SelectionType.INDIVIDUAL.value:
        if not client_id:
            raise ValueError("clientId is required for individual trips")
        client_group_id = None
    elif selection_type == SelectionType.GROUP.value:
        if not client_group_id:
            raise ValueError("clientGroupId is required for group trips")
        client_id = None
    else:
        raise ValueError(f"Unsupported selection type: {selection_type}")

    parse_hhmm(scheduled_time)
    weeks = parse_duration_weeks(duration)
    days = resolve_days(frequency, days_of_week)

    group_name = None
    if client_id:
        client = db.query(Client).filter(
            Client.id == client_id,
            Client.organization_id == org_id,
            Client.is_active.is_(True),
        ).first()
        if not client:
            raise LookupError("Client not found")
    else:
        group = db.query(ClientGroup).filter(
            ClientGroup.id == client_group_id,
            ClientGroup.organization_id == org_id,
            ClientGroup.is_active.is_(True),
        ).first()
        if not group:
            raise LookupError("Client group not found")
        group_name = group.name

    tz = get_org_timezone(db, org_id)
    templates: list[RecurringTrip] = []
    trips_created = 0

    try:
        for day in days:
            template = RecurringTrip(
                organization_id=org_id,
                client_id=client_id,
                client_group_id=client_group_id,
                day_of_week=day,
                scheduled_time=scheduled_time,
                pickup_address=pickup_address,
                dropoff_address=dropoff_address,
                is_round_trip=trip_type == TripType.ROUND_TRIP.value,
                frequency=frequency,
                duration_weeks=weeks,
                trip_nickname=trip_nickname,
                notes=notes,
                created_by_user_id=user_id,
            )
            db.add(template)
            db.flush()
            templates.append(template)

            for pickup_at in compute_occurrences(day, scheduled_time, weeks, now, tz):
                db.add(
                    Trip(
                        organization_id=org_id,
                        client_id=client_id,
                        client_group_id=client_group_id,
                        client_group_name=group_name,
                        pickup_address=pickup_address,
                        dropoff_address=dropoff_address,
                        scheduled_pickup_time=pickup_at,
                        trip_type=trip_type,
                        trip_nickname=trip_nickname,
                        status=DEFAULT_TRIP_STATUS.value,
                        recurring_trip_id=template.id,
                        notes=notes,
                        source=TripSource.RECURRING.value,
                        created_by_user_id=user_id,
                    )
                )
                trips_created += 1
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    for template in templates:
        db.refresh(template)

    logger.info(
        "Created %d recurring templates with %d trips",
        len(templates),
        trips_created,
        extra={"org_id": str(org_id)},
    )
    return RecurringTripBatch(templates=templates, trips_created=trips_created)


# =============================================================================
# Delete / Modify
# =============================================================================

def _open_future_trips(db: Session, template: RecurringTrip, now: datetime):
    """Series instances still ahead of now and not yet started or finished."""
    return db.query(Trip).filter(
        Trip.recurring_trip_id == template.id,
        Trip.scheduled_pickup_time >= now,
        Trip.status.in_(sorted(OPEN_TRIP_STATUSES)),
    )


def delete_series(
    db: Session,
    *,
    template: RecurringTrip,
    scope: str,
    trip_instance_id: UUID | None = None,
    now: datetime | None = None,
) -> int:
    """
    Delete one instance, or deactivate the template and drop its future trips.

    Past, started and finished instances are never touched. all_future deactivates the template
    even when there is nothing left to delete. Returns the trip count removed.
    """
    now = now or utcnow()

    try:
        if scope == DeleteScope.SINGLE.value:
            trip = _get_series_instance(db, template, trip_instance_id)
            db.delete(trip)
            count = 1
        elif scope == DeleteScope.ALL_FUTURE.value:
            template.is_active = False
            count = _open_future_trips(db, template, now).delete(
                synchronize_session=False
            )
        else:
            raise ValueError(f"Unsupported scope: {scope}")
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        "Deleted %d trips from recurring series (scope=%s)",
        count,
        scope,
        extra={"org_id": str(template.organization_id)},
    )
    return count


def _apply_trip_updates(trip: Trip, updates: dict, tz: ZoneInfo) -> None:
    for field in ("pickup_address", "dropoff_address", "trip_type", "trip_nickname", "notes"):
        if field in updates:
            setattr(trip, field, updates[field])
    if updates.get("scheduled_time"):
        # Keep the local date, move the wall-clock time
        local_date = trip.scheduled_pickup_time.astimezone(tz).date()
        new_time = parse_hhmm(updates["scheduled_time"])
        trip.scheduled_pickup_time = datetime.combine(
            local_date, new_time, tzinfo=tz
        ).astimezone(timezone.utc)


def _apply_template_updates(template: RecurringTrip, updates: dict) -> None:
    for field in ("pickup_address", "dropoff_address", "trip_nickname", "notes"):
        if field in updates:
            setattr(template, field, updates[field])
    if updates.get("scheduled_time"):
        template.scheduled_time = updates["scheduled_time"]
    if updates.get("trip_type"):
        template.is_round_trip = updates["trip_type"] == TripType.ROUND_TRIP.value


def modify_series(
    db: Session,
    *,
    template: RecurringTrip,
    scope: str,
    updates: dict,
    trip_instance_id: UUID | None = None,
    now: datetime | None = None,
) -> int:
    """
    Patch one instance, or the template plus every open future instance.

    recurring_trip_id is never part of an update. Returns trips changed.
    """
    now = now or utcnow()
    updates = {key: value for key, value in updates.items() if key != "recurring_trip_id"}
    if not updates:
        raise ValueError("No updates provided")
    for field in ("pickup_address", "dropoff_address", "scheduled_time", "trip_type"):
        if field in updates and updates[field] is None:
            raise ValueError(f"{field} cannot be cleared")

    tz = get_org_timezone(db, template.organization_id)

    try:
        if scope == DeleteScope.SINGLE.value:
            trip = _get_series_instance(db, template, trip_instance_id)
            _apply_trip_updates(trip, updates, tz)
            count = 1
        elif scope == DeleteScope.ALL_FUTURE.value:
            _apply_template_updates(template, updates)
            trips = _open_future_trips(db, template, now).all()
            for trip in trips:
                _apply_trip_updates(trip, updates, tz)
            count = len(trips)
        else:
            raise ValueError(f"Unsupported scope: {scope}")
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        "Modified %d trips in recurring series (scope=%s)",
        count,
        scope,
        extra={"org_id": str(template.organization_id)},
    )
    return count
