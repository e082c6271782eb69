"""Allowed trip status transitions."""

from app.db.enums import TripStatus

# Terminal statuses map to an empty set
TRIP_STATUS_TRANSITIONS: dict[str, set[str]] = {
    TripStatus.SCHEDULED.value: {
        TripStatus.CONFIRMED.value,
        TripStatus.IN_PROGRESS.value,
        TripStatus.CANCELLED.value,
        TripStatus.NO_SHOW.value,
    },
    TripStatus.CONFIRMED.value: {
        TripStatus.IN_PROGRESS.value,
        TripStatus.CANCELLED.value,
        TripStatus.NO_SHOW.value,
    },
    TripStatus.IN_PROGRESS.value: {
        TripStatus.COMPLETED.value,
        TripStatus.CANCELLED.value,
    },
    TripStatus.COMPLETED.value: set(),
    TripStatus.CANCELLED.value: set(),
    TripStatus.NO_SHOW.value: set(),
}


def allowed_next_statuses(current: str) -> list[str]:
    """Sorted list of statuses reachable from current."""
    return sorted(TRIP_STATUS_TRANSITIONS.get(current, set()))


def is_valid_transition(current: str, new: str) -> bool:
    """Same-status updates count as valid no-ops."""
    if current == new:
        return True
    return new in TRIP_STATUS_TRANSITIONS.get(current, set())


# Not yet started; series-wide edits and deletes only touch these
OPEN_TRIP_STATUSES: frozenset[str] = frozenset({
    TripStatus.SCHEDULED.value,
    TripStatus.CONFIRMED.value,
})
