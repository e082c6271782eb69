"""Tests for Ritten appointment filtering and outcome mapping (no database)."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.db.enums import WebhookEventStatus, WebhookOutcomeKind
from app.schemas.webhook import RittenAppointment
from app.services.webhooks.base import (
    ClientNotFound,
    Created,
    Duplicate,
    Error,
    Filtered,
    Skipped,
    summarize_outcome,
)
from app.services.webhooks.generic import GenericWebhookHandler
from app.services.webhooks.registry import get_handler
from app.services.webhooks.ritten import RittenWebhookHandler, should_create_trip_for_event

NOW = datetime(2026, 5, 4, 15, 0, tzinfo=timezone.utc)


def _appointment(**overrides) -> RittenAppointment:
    data = {
        "id": "appt-1",
        "title": "Dialysis transport",
        "description": "Weekly session",
        "start_datetime": NOW + timedelta(days=1),
        "end_datetime": NOW + timedelta(days=1, hours=2),
        "attendees": [{"name": "Jane Doe"}],
        "location": "Clinic",
    }
    data.update(overrides)
    return RittenAppointment.model_validate(data)


def _decide(appointment, keywords=None, attendees=None, lead_hours=2):
    return should_create_trip_for_event(
        appointment,
        filter_keywords=keywords,
        filter_attendees=attendees,
        now=NOW,
        min_lead_hours=lead_hours,
    )


class TestShouldCreateTrip:
    def test_no_filters_accepts_future_appointment(self):
        assert _decide(_appointment()).create is True

    def test_keyword_matches_title_case_insensitively(self):
        assert _decide(_appointment(), keywords=["TRANSPORT"]).create is True

    def test_keyword_matches_description(self):
        decision = _decide(_appointment(title="Checkup"), keywords=["weekly"])
        assert decision.create is True

    def test_keyword_mismatch(self):
        decision = _decide(_appointment(), keywords=["pickup", "ride"])
        assert decision.create is False
        assert decision.reason == "No matching keywords found"

    def test_attendee_matches_case_insensitively(self):
        assert _decide(_appointment(), attendees=["jane doe"]).create is True

    def test_attendee_mismatch(self):
        decision = _decide(_appointment(), attendees=["John Smith"])
        assert decision.create is False
        assert decision.reason == "No matching attendees found"

    def test_one_hour_ahead_is_too_soon(self):
        decision = _decide(_appointment(start_datetime=NOW + timedelta(hours=1)))
        assert decision.create is False
        assert decision.reason == "Appointment too soon (less than 2 hours advance notice)"

    def test_exactly_min_lead_time_is_accepted(self):
        assert _decide(_appointment(start_datetime=NOW + timedelta(hours=2))).create is True

    def test_just_under_min_lead_time_is_rejected(self):
        start = NOW + timedelta(hours=2) - timedelta(seconds=1)
        assert _decide(_appointment(start_datetime=start)).create is False

    def test_keyword_check_runs_before_lead_time(self):
        decision = _decide(
            _appointment(title="Standup", description=None, start_datetime=NOW),
            keywords=["transport"],
        )
        assert decision.reason == "No matching keywords found"

    def test_naive_start_is_read_as_utc(self):
        appointment = _appointment(start_datetime="2026-05-05T15:00:00")
        assert appointment.start_datetime == datetime(2026, 5, 5, 15, 0, tzinfo=timezone.utc)


class TestSummarizeOutcome:
    def test_created(self):
        trip_id = uuid.uuid4()
        summary = summarize_outcome(Created(trip_id=trip_id))
        assert summary.kind == WebhookOutcomeKind.CREATED
        assert summary.log_status == WebhookEventStatus.SUCCESS
        assert summary.processed is True
        assert summary.trip_ids == [str(trip_id)]
        assert summary.trips_created == 1

    def test_filtered_is_not_processed(self):
        summary = summarize_outcome(Filtered(reason="No matching keywords found"))
        assert summary.log_status == WebhookEventStatus.SKIPPED
        assert summary.processed is False
        assert summary.reason == "No matching keywords found"

    def test_skipped_is_processed(self):
        summary = summarize_outcome(Skipped(reason="pass-through"))
        assert summary.log_status == WebhookEventStatus.SKIPPED
        assert summary.processed is True
        assert summary.trips_created == 0

    def test_duplicate_references_existing_trip(self):
        trip_id = uuid.uuid4()
        summary = summarize_outcome(Duplicate(trip_id=trip_id))
        assert summary.kind == WebhookOutcomeKind.DUPLICATE
        assert summary.trip_ids == []
        assert str(trip_id) in summary.reason

    def test_client_not_found_is_logged_as_error(self):
        summary = summarize_outcome(ClientNotFound())
        assert summary.log_status == WebhookEventStatus.ERROR
        assert summary.error_message == "No matching client found"

    def test_error(self):
        summary = summarize_outcome(Error(cause="boom"))
        assert summary.kind == WebhookOutcomeKind.ERROR
        assert summary.processed is False
        assert summary.error_message == "boom"

    def test_unknown_outcome_raises(self):
        with pytest.raises(TypeError):
            summarize_outcome("created")


# =============================================================================
# Handler registry
# =============================================================================

class TestHandlerRegistry:
    def test_ritten_has_its_own_handler(self):
        assert isinstance(get_handler("ritten"), RittenWebhookHandler)

    @pytest.mark.parametrize("provider", ["google_calendar", "outlook", "generic"])
    def test_other_providers_pass_through(self, provider):
        assert isinstance(get_handler(provider), GenericWebhookHandler)

    def test_unknown_provider_raises(self):
        with pytest.raises(KeyError, match="Unknown webhook handler"):
            get_handler("icloud")
