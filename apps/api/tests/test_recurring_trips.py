"""Tests for the recurring trips API and series operations."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.db.models import Client, ClientGroup, RecurringTrip, Trip
from app.services import recurring_trip_service

# Monday 2026-03-02, 07:00 in New York
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now(monkeypatch):
    """Pin the service clock; returns a setter for moving it later."""
    state = {"now": NOW}
    monkeypatch.setattr(recurring_trip_service, "utcnow", lambda: state["now"])

    def move_to(value: datetime):
        state["now"] = value

    return move_to


@pytest.fixture
def client_group(db, test_org, test_client_record):
    group = ClientGroup(organization_id=test_org.id, name="Dialysis Tuesday")
    db.add(group)
    db.commit()
    return group


def _payload(org_id, **overrides):
    payload = {
        "selectionType": "individual",
        "organizationId": str(org_id),
        "pickupAddress": "1 Main St",
        "dropoffAddress": "2 Clinic Rd",
        "scheduledTime": "09:00",
        "frequency": "weekly",
        "daysOfWeek": ["monday", "wednesday"],
        "duration": "4",
        "tripType": "round_trip",
    }
    payload.update(overrides)
    return payload


async def _create_series(authed_client, test_org, test_client_record, **overrides):
    response = await authed_client.post(
        "/recurring-trips",
        json=_payload(test_org.id, clientId=str(test_client_record.id), **overrides),
    )
    assert response.status_code == 200, response.text
    return response.json()


async def _finish_first_instance(authed_client, db, template_id) -> Trip:
    """Drive the earliest instance of a series through to completed."""
    first = (
        db.query(Trip)
        .filter(Trip.recurring_trip_id == template_id)
        .order_by(Trip.scheduled_pickup_time)
        .first()
    )
    for status in ("in_progress", "completed"):
        response = await authed_client.patch(
            f"/trips/{first.id}/status", json={"status": status}
        )
        assert response.status_code == 200, response.text
    return first


# =============================================================================
# Create
# =============================================================================

class TestCreateRecurringTrips:
    @pytest.mark.asyncio
    async def test_create_individual_series(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(authed_client, test_org, test_client_record)

        assert data["success"] is True
        assert len(data["recurringTripIds"]) == 2
        assert data["recurringTripId"] == data["recurringTripIds"][0]
        assert data["tripInstancesCreated"] == 8
        assert data["message"] == "Created 2 recurring trip(s) with 8 trip instances"

        templates = db.query(RecurringTrip).filter(
            RecurringTrip.organization_id == test_org.id
        ).all()
        assert sorted(t.day_of_week for t in templates) == [1, 3]
        assert all(t.is_round_trip for t in templates)
        assert all(t.duration_weeks == 4 for t in templates)

        trips = db.query(Trip).filter(Trip.organization_id == test_org.id).all()
        assert len(trips) == 8
        assert {trip.status for trip in trips} == {"scheduled"}
        assert {trip.source for trip in trips} == {"recurring"}
        assert {trip.client_id for trip in trips} == {test_client_record.id}
        assert {trip.recurring_trip_id for trip in trips} == {t.id for t in templates}

    @pytest.mark.asyncio
    async def test_create_group_series_snapshots_group_name(
        self, authed_client: AsyncClient, db, test_org, client_group, fixed_now
    ):
        response = await authed_client.post(
            "/recurring-trips",
            json=_payload(
                test_org.id,
                selectionType="group",
                clientGroupId=str(client_group.id),
                daysOfWeek=["tuesday"],
                duration=2,
                tripType="one_way",
            ),
        )
        assert response.status_code == 200, response.text
        assert response.json()["tripInstancesCreated"] == 2

        trips = db.query(Trip).filter(Trip.organization_id == test_org.id).all()
        assert len(trips) == 2
        assert all(trip.client_id is None for trip in trips)
        assert all(trip.client_group_id == client_group.id for trip in trips)
        assert all(trip.client_group_name == "Dialysis Tuesday" for trip in trips)

        template = db.query(RecurringTrip).one()
        assert template.client_id is None
        assert template.is_round_trip is False

    @pytest.mark.asyncio
    async def test_daily_frequency_creates_seven_templates(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record,
            frequency="daily", daysOfWeek=[], duration="1",
        )

        assert len(data["recurringTripIds"]) == 7
        assert data["tripInstancesCreated"] == 7
        assert sorted(t.day_of_week for t in db.query(RecurringTrip).all()) == list(range(7))

    @pytest.mark.asyncio
    async def test_same_day_past_time_not_created(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record,
            scheduledTime="06:00", daysOfWeek=["monday"], duration="4",
        )

        assert data["tripInstancesCreated"] == 3
        first = db.query(Trip).order_by(Trip.scheduled_pickup_time).first()
        assert first.scheduled_pickup_time == datetime(2026, 3, 9, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides,detail",
        [
            ({"clientId": None}, "clientId is required"),
            ({"duration": "0"}, "Duration must be between"),
            ({"duration": "many"}, "whole number of weeks"),
            ({"daysOfWeek": []}, "At least one day"),
            ({"daysOfWeek": ["someday"]}, "Invalid day of week"),
            ({"frequency": "monthly"}, "Unsupported frequency"),
        ],
    )
    async def test_invalid_input_returns_400(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now,
        overrides, detail,
    ):
        payload = _payload(test_org.id, clientId=str(test_client_record.id))
        payload.update(overrides)

        response = await authed_client.post("/recurring-trips", json=payload)

        assert response.status_code == 400
        assert detail in response.json()["detail"]
        assert db.query(RecurringTrip).count() == 0
        assert db.query(Trip).count() == 0

    @pytest.mark.asyncio
    async def test_bad_time_format_rejected(
        self, authed_client: AsyncClient, test_org, test_client_record
    ):
        response = await authed_client.post(
            "/recurring-trips",
            json=_payload(
                test_org.id, clientId=str(test_client_record.id), scheduledTime="25:00"
            ),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_client_from_other_org_returns_404(
        self, authed_client: AsyncClient, db, test_org, other_org, fixed_now
    ):
        stranger = Client(organization_id=other_org.id, first_name="Sam", last_name="Roe")
        db.add(stranger)
        db.commit()

        response = await authed_client.post(
            "/recurring-trips",
            json=_payload(test_org.id, clientId=str(stranger.id)),
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Client not found"

    @pytest.mark.asyncio
    async def test_other_organization_forbidden(
        self, authed_client: AsyncClient, other_org, test_client_record
    ):
        response = await authed_client.post(
            "/recurring-trips",
            json=_payload(other_org.id, clientId=str(test_client_record.id)),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_requires_csrf_header(
        self, authed_client: AsyncClient, test_org, test_client_record
    ):
        response = await authed_client.post(
            "/recurring-trips",
            json=_payload(test_org.id, clientId=str(test_client_record.id)),
            headers={"X-Requested-With": ""},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: AsyncClient, test_org):
        response = await client.post(
            "/recurring-trips",
            json=_payload(test_org.id, clientId=str(uuid.uuid4())),
            headers={"X-Requested-With": "XMLHttpRequest"},
        )
        assert response.status_code == 401


# =============================================================================
# List
# =============================================================================

@pytest.mark.asyncio
async def test_list_reports_future_instance_count(
    authed_client: AsyncClient, test_org, test_client_record, fixed_now
):
    data = await _create_series(
        authed_client, test_org, test_client_record, daysOfWeek=["monday"]
    )
    fixed_now(NOW + timedelta(days=8))

    response = await authed_client.get(f"/recurring-trips/organization/{test_org.id}")

    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 1
    assert rows[0]["id"] == data["recurringTripId"]
    assert rows[0]["scheduled_time"] == "09:00"
    # Mar 2 and Mar 9 are in the past by Mar 10
    assert rows[0]["future_instance_count"] == 2


# =============================================================================
# Delete
# =============================================================================

class TestDeleteSeries:
    @pytest.mark.asyncio
    async def test_all_future_keeps_past_and_deactivates(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record, daysOfWeek=["monday"]
        )
        template_id = data["recurringTripId"]
        fixed_now(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))

        response = await authed_client.request(
            "DELETE", f"/recurring-trips/{template_id}", json={"scope": "all_future"}
        )

        assert response.status_code == 200, response.text
        assert response.json() == {"success": True, "scope": "all_future", "count": 2}

        remaining = db.query(Trip).order_by(Trip.scheduled_pickup_time).all()
        assert [trip.scheduled_pickup_time.day for trip in remaining] == [2, 9]
        template = db.get(RecurringTrip, uuid.UUID(template_id))
        db.refresh(template)
        assert template.is_active is False

        listed = await authed_client.get(f"/recurring-trips/organization/{test_org.id}")
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_all_future_keeps_started_and_finished_trips(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record, daysOfWeek=["monday"]
        )
        template_id = uuid.UUID(data["recurringTripId"])
        # Today's 09:00 pickup is still ahead of the clock but already done
        finished = await _finish_first_instance(authed_client, db, template_id)
        second = (
            db.query(Trip)
            .filter(Trip.recurring_trip_id == template_id)
            .order_by(Trip.scheduled_pickup_time)
            .all()[1]
        )
        second.status = "no_show"
        db.commit()

        response = await authed_client.request(
            "DELETE", f"/recurring-trips/{template_id}", json={"scope": "all_future"}
        )

        assert response.status_code == 200, response.text
        assert response.json()["count"] == 2
        db.expire_all()
        assert {trip.id for trip in db.query(Trip).all()} == {finished.id, second.id}
        assert db.get(Trip, finished.id).status == "completed"

    @pytest.mark.asyncio
    async def test_all_future_with_nothing_left_still_deactivates(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record, daysOfWeek=["monday"]
        )
        fixed_now(datetime(2027, 1, 1, tzinfo=timezone.utc))

        response = await authed_client.request(
            "DELETE",
            f"/recurring-trips/{data['recurringTripId']}",
            json={"scope": "all_future"},
        )

        assert response.status_code == 200
        assert response.json()["count"] == 0
        assert db.query(Trip).count() == 4
        template = db.get(RecurringTrip, uuid.UUID(data["recurringTripId"]))
        db.refresh(template)
        assert template.is_active is False

    @pytest.mark.asyncio
    async def test_single_deletes_only_that_instance(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record, daysOfWeek=["monday"]
        )
        template_id = uuid.UUID(data["recurringTripId"])
        target = (
            db.query(Trip)
            .filter(Trip.recurring_trip_id == template_id)
            .order_by(Trip.scheduled_pickup_time)
            .all()[1]
        )

        response = await authed_client.request(
            "DELETE",
            f"/recurring-trips/{template_id}",
            json={"scope": "single", "tripInstanceId": str(target.id)},
        )

        assert response.status_code == 200
        assert response.json()["count"] == 1
        db.expire_all()
        assert db.query(Trip).count() == 3
        assert db.get(Trip, target.id) is None
        assert db.get(RecurringTrip, template_id).is_active is True

    @pytest.mark.asyncio
    async def test_single_without_instance_id_returns_400(
        self, authed_client: AsyncClient, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(authed_client, test_org, test_client_record)

        response = await authed_client.request(
            "DELETE", f"/recurring-trips/{data['recurringTripId']}", json={"scope": "single"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_single_with_instance_from_other_series_returns_404(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(authed_client, test_org, test_client_record)
        first_id, second_id = (uuid.UUID(value) for value in data["recurringTripIds"])
        foreign = db.query(Trip).filter(Trip.recurring_trip_id == second_id).first()

        response = await authed_client.request(
            "DELETE",
            f"/recurring-trips/{first_id}",
            json={"scope": "single", "tripInstanceId": str(foreign.id)},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_series_returns_404(self, authed_client: AsyncClient):
        response = await authed_client.request(
            "DELETE", f"/recurring-trips/{uuid.uuid4()}", json={"scope": "all_future"}
        )
        assert response.status_code == 404


# =============================================================================
# Modify
# =============================================================================

class TestModifySeries:
    @pytest.mark.asyncio
    async def test_single_changes_one_instance(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record, daysOfWeek=["monday"]
        )
        template_id = uuid.UUID(data["recurringTripId"])
        target = db.query(Trip).filter(Trip.recurring_trip_id == template_id).first()

        response = await authed_client.patch(
            f"/recurring-trips/{template_id}/modify",
            json={
                "scope": "single",
                "tripInstanceId": str(target.id),
                "updates": {"pickupAddress": "9 New St"},
            },
        )

        assert response.status_code == 200, response.text
        assert response.json()["count"] == 1
        db.expire_all()
        addresses = {trip.pickup_address for trip in db.query(Trip).all()}
        assert addresses == {"1 Main St", "9 New St"}
        assert db.get(RecurringTrip, template_id).pickup_address == "1 Main St"

    @pytest.mark.asyncio
    async def test_all_future_updates_template_and_future_trips(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record, daysOfWeek=["monday"]
        )
        template_id = uuid.UUID(data["recurringTripId"])
        fixed_now(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))

        response = await authed_client.patch(
            f"/recurring-trips/{template_id}/modify",
            json={
                "scope": "all_future",
                "updates": {"scheduledTime": "10:30", "tripType": "one_way"},
            },
        )

        assert response.status_code == 200, response.text
        assert response.json()["count"] == 2
        db.expire_all()
        template = db.get(RecurringTrip, template_id)
        assert template.scheduled_time == "10:30"
        assert template.is_round_trip is False

        trips = db.query(Trip).order_by(Trip.scheduled_pickup_time).all()
        # Mar 2 and Mar 9 stay at 09:00 EST/EDT; Mar 16 and 23 move to 10:30 EDT
        assert [trip.scheduled_pickup_time.hour for trip in trips] == [14, 13, 14, 14]
        assert [trip.scheduled_pickup_time.minute for trip in trips] == [0, 0, 30, 30]
        assert [trip.trip_type for trip in trips] == [
            "round_trip", "round_trip", "one_way", "one_way"
        ]
        assert all(trip.recurring_trip_id == template_id for trip in trips)

    @pytest.mark.asyncio
    async def test_all_future_leaves_completed_trip_untouched(
        self, authed_client: AsyncClient, db, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(
            authed_client, test_org, test_client_record, daysOfWeek=["monday"]
        )
        template_id = uuid.UUID(data["recurringTripId"])
        finished = await _finish_first_instance(authed_client, db, template_id)

        response = await authed_client.patch(
            f"/recurring-trips/{template_id}/modify",
            json={"scope": "all_future", "updates": {"pickupAddress": "99 New St"}},
        )

        assert response.status_code == 200, response.text
        assert response.json()["count"] == 3
        db.expire_all()
        assert db.get(Trip, finished.id).pickup_address == "1 Main St"
        others = db.query(Trip).filter(Trip.id != finished.id).all()
        assert {trip.pickup_address for trip in others} == {"99 New St"}

    @pytest.mark.asyncio
    async def test_series_link_cannot_be_updated(
        self, authed_client: AsyncClient, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(authed_client, test_org, test_client_record)

        response = await authed_client.patch(
            f"/recurring-trips/{data['recurringTripId']}/modify",
            json={
                "scope": "all_future",
                "updates": {"recurring_trip_id": str(uuid.uuid4())},
            },
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_empty_updates_returns_400(
        self, authed_client: AsyncClient, test_org, test_client_record, fixed_now
    ):
        data = await _create_series(authed_client, test_org, test_client_record)

        response = await authed_client.patch(
            f"/recurring-trips/{data['recurringTripId']}/modify",
            json={"scope": "all_future", "updates": {}},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "No updates provided"


def test_recurring_trip_id_is_immutable(db, test_org, test_client_record):
    template = RecurringTrip(
        organization_id=test_org.id,
        client_id=test_client_record.id,
        day_of_week=1,
        scheduled_time="09:00",
        pickup_address="A",
        dropoff_address="B",
        duration_weeks=1,
    )
    db.add(template)
    db.flush()
    trip = Trip(
        organization_id=test_org.id,
        client_id=test_client_record.id,
        pickup_address="A",
        dropoff_address="B",
        scheduled_pickup_time=NOW,
        recurring_trip_id=template.id,
    )

    with pytest.raises(ValueError):
        trip.recurring_trip_id = uuid.uuid4()
