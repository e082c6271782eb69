"""Tests for webhook integration admin and delivery logs."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.core.encryption import decrypt_secret
from app.db.enums import Role
from app.db.models import TripCreationRule, WebhookEventLog, WebhookIntegration


def _integration_body(org_id, **overrides):
    body = {
        "organization_id": str(org_id),
        "name": "Ritten calendar",
        "provider": "ritten",
        "generate_secret": True,
        "filter_keywords": [" transport ", "transport", ""],
        "rule": {"pickup_offset_minutes": -45, "default_pickup_location": "Home"},
    }
    body.update(overrides)
    return body


class TestCreateIntegration:
    @pytest.mark.asyncio
    async def test_generated_secret_returned_once_and_stored_encrypted(
        self, authed_client: AsyncClient, db, test_org
    ):
        response = await authed_client.post("/integrations", json=_integration_body(test_org.id))

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["has_secret"] is True
        assert len(data["secret_key"]) == 64
        assert data["filter_keywords"] == ["transport"]
        assert len(data["rules"]) == 1
        assert data["rules"][0]["pickup_offset_minutes"] == -45
        assert data["rules"][0]["requires_approval"] is True

        stored = db.get(WebhookIntegration, uuid.UUID(data["id"]))
        assert stored.secret_key_encrypted != data["secret_key"]
        assert decrypt_secret(stored.secret_key_encrypted) == data["secret_key"]

        listed = await authed_client.get(f"/integrations/{test_org.id}")
        assert listed.status_code == 200
        [item] = listed.json()
        assert item["has_secret"] is True
        assert "secret_key" not in item
        assert "secret_key_encrypted" not in item

    @pytest.mark.asyncio
    async def test_known_secret_is_echoed_once(self, authed_client: AsyncClient, test_org):
        response = await authed_client.post(
            "/integrations",
            json=_integration_body(
                test_org.id, generate_secret=False, secret_key="known-secret-1"
            ),
        )
        assert response.status_code == 201
        assert response.json()["secret_key"] == "known-secret-1"

    @pytest.mark.asyncio
    async def test_without_secret(self, authed_client: AsyncClient, test_org):
        response = await authed_client.post(
            "/integrations",
            json=_integration_body(test_org.id, generate_secret=False, rule=None),
        )
        data = response.json()
        assert response.status_code == 201
        assert data["has_secret"] is False
        assert data["secret_key"] is None
        assert data["rules"] == []

    @pytest.mark.asyncio
    async def test_secret_and_generate_secret_together_rejected(
        self, authed_client: AsyncClient, test_org
    ):
        response = await authed_client.post(
            "/integrations",
            json=_integration_body(test_org.id, secret_key="known-secret-1"),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_provider_rejected(self, authed_client: AsyncClient, test_org):
        response = await authed_client.post(
            "/integrations", json=_integration_body(test_org.id, provider="icloud")
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_other_organization_forbidden(self, authed_client: AsyncClient, other_org):
        response = await authed_client.post("/integrations", json=_integration_body(other_org.id))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_super_admin_may_create_for_any_org(
        self, client: AsyncClient, login_as, other_org
    ):
        login_as(client, Role.SUPER_ADMIN)

        response = await client.post("/integrations", json=_integration_body(other_org.id))

        assert response.status_code == 201
        assert response.json()["organization_id"] == str(other_org.id)

    @pytest.mark.asyncio
    async def test_program_user_cannot_manage_integrations(
        self, client: AsyncClient, login_as, test_org
    ):
        login_as(client, Role.PROGRAM_USER)

        response = await client.get(f"/integrations/{test_org.id}")

        assert response.status_code == 403
        assert response.json()["detail"] == "Missing permission 'manage_integrations'"


class TestTripCreationRules:
    @pytest.mark.asyncio
    async def test_add_rule(self, authed_client: AsyncClient, db, test_org):
        created = await authed_client.post(
            "/integrations", json=_integration_body(test_org.id, rule=None)
        )
        integration_id = created.json()["id"]

        response = await authed_client.post(
            f"/integrations/{integration_id}/rules",
            json={"name": "Late pickup", "pickup_offset_minutes": 30, "trip_type": "round_trip"},
        )

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["integration_id"] == integration_id
        assert data["trip_type"] == "round_trip"
        assert db.query(TripCreationRule).count() == 1

    @pytest.mark.asyncio
    async def test_offset_out_of_range_rejected(self, authed_client: AsyncClient, test_org):
        created = await authed_client.post("/integrations", json=_integration_body(test_org.id))

        response = await authed_client.post(
            f"/integrations/{created.json()['id']}/rules",
            json={"pickup_offset_minutes": 5000},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_integration_returns_404(self, authed_client: AsyncClient):
        response = await authed_client.post(f"/integrations/{uuid.uuid4()}/rules", json={})
        assert response.status_code == 404


class TestWebhookLogs:
    @pytest.mark.asyncio
    async def test_logs_newest_first_and_capped(
        self, authed_client: AsyncClient, db, test_org, monkeypatch
    ):
        created = await authed_client.post("/integrations", json=_integration_body(test_org.id))
        integration_id = uuid.UUID(created.json()["id"])
        base = datetime(2026, 4, 1, tzinfo=timezone.utc)
        for index in range(5):
            db.add(
                WebhookEventLog(
                    integration_id=integration_id,
                    organization_id=test_org.id,
                    event_type="appointment.created",
                    external_event_id=f"evt-{index}",
                    event_data={"event_id": f"evt-{index}"},
                    status="success",
                    created_at=base + timedelta(minutes=index),
                )
            )
        db.commit()
        monkeypatch.setattr(settings, "WEBHOOK_LOG_LIMIT", 3)

        response = await authed_client.get(f"/logs/{test_org.id}")

        assert response.status_code == 200
        assert [row["external_event_id"] for row in response.json()] == [
            "evt-4", "evt-3", "evt-2"
        ]

    @pytest.mark.asyncio
    async def test_logs_scoped_to_organization(
        self, authed_client: AsyncClient, other_org
    ):
        response = await authed_client.get(f"/logs/{other_org.id}")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_program_admin_can_view_logs(self, client: AsyncClient, login_as, test_org):
        login_as(client, Role.PROGRAM_ADMIN)

        response = await client.get(f"/logs/{test_org.id}")

        assert response.status_code == 200
        assert response.json() == []
