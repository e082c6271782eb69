"""Integrations router - calendar webhook integrations and delivery logs."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import ensure_org_access, get_db, require_csrf_header, require_permission
from app.core.permissions import PermissionKey as P
from app.schemas.auth import UserSession
from app.schemas.webhook import (
    TripCreationRuleCreate,
    TripCreationRuleRead,
    WebhookEventLogRead,
    WebhookIntegrationCreate,
    WebhookIntegrationCreateResponse,
    WebhookIntegrationRead,
)
from app.services import webhook_ingest_service, webhook_integration_service

router = APIRouter()


@router.get("/integrations/{organization_id}", response_model=list[WebhookIntegrationRead])
def list_integrations(
    organization_id: UUID,
    session: UserSession = Depends(require_permission(P.INTEGRATIONS_MANAGE)),
    db: Session = Depends(get_db),
):
    """List webhook integrations. Secrets are never returned."""
    ensure_org_access(session, organization_id)
    integrations = webhook_integration_service.list_integrations(db, organization_id)
    return [
        WebhookIntegrationRead(**webhook_integration_service.to_read_dict(db, i))
        for i in integrations
    ]


@router.post(
    "/integrations",
    response_model=WebhookIntegrationCreateResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_integration(
    data: WebhookIntegrationCreate,
    session: UserSession = Depends(require_permission(P.INTEGRATIONS_MANAGE)),
    db: Session = Depends(get_db),
):
    """
    Create a webhook integration with an optional first rule.

    A generated secret is returned in this response only.
    """
    ensure_org_access(session, data.organization_id)
    try:
        integration, secret = webhook_integration_service.create_integration(
            db,
            org_id=data.organization_id,
            name=data.name,
            provider=data.provider,
            secret_key=data.secret_key,
            generate_secret=data.generate_secret,
            filter_keywords=data.filter_keywords,
            filter_attendees=data.filter_attendees,
            rule=data.rule,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return WebhookIntegrationCreateResponse(
        **webhook_integration_service.to_read_dict(db, integration),
        secret_key=secret,
    )


@router.post(
    "/integrations/{integration_id}/rules",
    response_model=TripCreationRuleRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_trip_creation_rule(
    integration_id: UUID,
    data: TripCreationRuleCreate,
    session: UserSession = Depends(require_permission(P.INTEGRATIONS_MANAGE)),
    db: Session = Depends(get_db),
):
    """Add a trip creation rule. The oldest active rule is used."""
    integration = webhook_integration_service.get_integration(db, integration_id)
    if not integration:
        raise HTTPException(status_code=404, detail="Integration not found")
    ensure_org_access(session, integration.organization_id)
    return webhook_integration_service.add_rule(db, integration, data)


@router.get("/logs/{organization_id}", response_model=list[WebhookEventLogRead])
def list_webhook_logs(
    organization_id: UUID,
    session: UserSession = Depends(require_permission(P.INTEGRATION_LOGS_VIEW)),
    db: Session = Depends(get_db),
):
    """Last 100 webhook deliveries, newest first."""
    ensure_org_access(session, organization_id)
    return webhook_ingest_service.list_event_logs(db, organization_id)
