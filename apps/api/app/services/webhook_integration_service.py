"""Webhook integration admin - integrations and trip creation rules."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.encryption import encrypt_secret
from app.core.security import generate_webhook_secret
from app.db.enums import WebhookProvider
from app.db.models import TripCreationRule, WebhookIntegration
from app.schemas.webhook import TripCreationRuleCreate, TripCreationRuleRead

logger = logging.getLogger(__name__)


def _clean_filters(values: list[str] | None) -> list[str]:
    cleaned: list[str] = []
    for value in values or []:
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def list_integrations(db: Session, org_id: UUID) -> list[WebhookIntegration]:
    return (
        db.query(WebhookIntegration)
        .filter(WebhookIntegration.organization_id == org_id)
        .order_by(WebhookIntegration.created_at, WebhookIntegration.id)
        .all()
    )


def get_integration(db: Session, integration_id: UUID) -> WebhookIntegration | None:
    return db.query(WebhookIntegration).filter(WebhookIntegration.id == integration_id).first()


def list_rules(db: Session, integration_id: UUID) -> list[TripCreationRule]:
    return (
        db.query(TripCreationRule)
        .filter(TripCreationRule.integration_id == integration_id)
        .order_by(TripCreationRule.created_at, TripCreationRule.id)
        .all()
    )


def _build_rule(
    integration: WebhookIntegration,
    data: TripCreationRuleCreate,
) -> TripCreationRule:
    return TripCreationRule(
        integration_id=integration.id,
        organization_id=integration.organization_id,
        name=data.name,
        pickup_offset_minutes=data.pickup_offset_minutes,
        default_pickup_location=data.default_pickup_location or None,
        trip_type=data.trip_type,
        requires_approval=data.requires_approval,
    )


def create_integration(
    db: Session,
    *,
    org_id: UUID,
    name: str,
    provider: str,
    secret_key: str | None = None,
    generate_secret: bool = False,
    filter_keywords: list[str] | None = None,
    filter_attendees: list[str] | None = None,
    rule: TripCreationRuleCreate | None = None,
) -> tuple[WebhookIntegration, str | None]:
    """
    Create an integration and, optionally, its first rule.

    Returns the integration and the plaintext secret. The secret is only
    available here; it is stored encrypted.
    """
    if provider not in {p.value for p in WebhookProvider}:
        raise ValueError(f"Unsupported provider: {provider}")
    if secret_key and generate_secret:
        raise ValueError("Pass either secret_key or generate_secret, not both")

    secret = generate_webhook_secret() if generate_secret else secret_key
    integration = WebhookIntegration(
        organization_id=org_id,
        name=name,
        provider=provider,
        secret_key_encrypted=encrypt_secret(secret) if secret else None,
        filter_keywords=_clean_filters(filter_keywords),
        filter_attendees=_clean_filters(filter_attendees),
    )
    db.add(integration)
    db.flush()
    if rule:
        db.add(_build_rule(integration, rule))
    db.commit()
    db.refresh(integration)

    logger.info(
        "Webhook integration created (provider=%s)",
        provider,
        extra={"org_id": str(org_id), "integration_id": str(integration.id)},
    )
    return integration, secret


def add_rule(
    db: Session,
    integration: WebhookIntegration,
    data: TripCreationRuleCreate,
) -> TripCreationRule:
    rule = _build_rule(integration, data)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def to_read_dict(db: Session, integration: WebhookIntegration) -> dict:
    """Integration fields for API responses. The secret is never included."""
    return {
        "id": integration.id,
        "organization_id": integration.organization_id,
        "name": integration.name,
        "provider": integration.provider,
        "filter_keywords": list(integration.filter_keywords or []),
        "filter_attendees": list(integration.filter_attendees or []),
        "is_active": integration.is_active,
        "has_secret": bool(integration.secret_key_encrypted),
        "created_at": integration.created_at,
        "rules": [
            TripCreationRuleRead.model_validate(rule)
            for rule in list_rules(db, integration.id)
        ],
    }
