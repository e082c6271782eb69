"""Webhooks router - calendar provider callbacks."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_db
from app.core.rate_limit import WEBHOOK_LIMIT, limiter, webhook_rate_key
from app.core.structured_logging import request_log_context
from app.schemas.webhook import WebhookResponse
from app.services import webhook_ingest_service
from app.services.webhooks.base import read_body_safe

router = APIRouter()
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"


@router.post("/webhook/{integration_id}", response_model=WebhookResponse)
@limiter.limit(WEBHOOK_LIMIT, key_func=webhook_rate_key)
async def receive_calendar_webhook(
    integration_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Receive an appointment callback for a configured integration.

    Security:
    - Validates payload size (413)
    - Validates x-webhook-signature HMAC when the integration has a secret (401)

    Processing:
    - Logs the delivery as pending, dispatches by provider, then records
      the outcome. Filtered or failed deliveries still return 200 with
      processed=false.
    """
    try:
        integration_uuid = UUID(integration_id)
    except ValueError:
        raise HTTPException(404, "Integration not found")

    integration = webhook_ingest_service.get_active_integration(db, integration_uuid)
    if not integration:
        raise HTTPException(404, "Integration not found")

    log_context = request_log_context(
        request,
        org_id=str(integration.organization_id),
        integration_id=str(integration.id),
    )

    body = await read_body_safe(request, settings.WEBHOOK_MAX_PAYLOAD_BYTES)

    try:
        signature_ok = webhook_ingest_service.verify_delivery(
            integration, body, request.headers.get(SIGNATURE_HEADER)
        )
    except ValueError:
        logger.exception("Webhook secret could not be decrypted", extra=log_context)
        raise HTTPException(500, "Internal server error")
    if not signature_ok:
        logger.warning("Webhook invalid signature", extra=log_context)
        raise HTTPException(401, "Invalid signature")

    try:
        payload = webhook_ingest_service.parse_payload(body)
    except ValueError:
        raise HTTPException(400, "Invalid JSON")

    try:
        summary = webhook_ingest_service.process_delivery(db, integration, payload)
    except Exception:
        db.rollback()
        logger.exception("Webhook delivery failed", extra=log_context)
        raise HTTPException(500, "Internal server error")

    return WebhookResponse(
        success=True,
        processed=summary.processed,
        trips_created=summary.trips_created,
        outcome=summary.kind.value,
    )
