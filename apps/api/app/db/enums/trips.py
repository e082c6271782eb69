"""Trip and recurrence enums."""

from enum import Enum


class TripStatus(str, Enum):
    """
    Trip lifecycle status.

    Flow: scheduled → confirmed → in_progress → completed
              ↘ cancelled / no_show
    """

    SCHEDULED = "scheduled"  # Awaiting confirmation
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"  # Client picked up
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class TripType(str, Enum):
    ONE_WAY = "one_way"
    ROUND_TRIP = "round_trip"


class TripSource(str, Enum):
    """How the trip row was created."""

    MANUAL = "manual"
    RECURRING = "recurring"
    WEBHOOK = "webhook"


class SelectionType(str, Enum):
    """Rider selection for a recurring template."""

    INDIVIDUAL = "individual"
    GROUP = "group"


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"  # Every day of the week
    WEEKLY = "weekly"  # Selected days of the week


class DeleteScope(str, Enum):
    """Scope of a delete/modify on a recurring series."""

    SINGLE = "single"
    ALL_FUTURE = "all_future"


DEFAULT_TRIP_STATUS = TripStatus.SCHEDULED
