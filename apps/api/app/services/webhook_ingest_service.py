"""Webhook ingest service - verifies, logs and dispatches calendar deliveries.

Each delivery is logged as pending before processing and the log row is
finalized exactly once with the outcome.
"""

import json
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.encryption import decrypt_secret
from app.core.security import verify_webhook_signature
from app.core.structured_logging import build_log_context
from app.db.enums import WebhookEventStatus
from app.db.models import WebhookEventLog, WebhookIntegration
from app.db.types import utcnow
from app.services.webhooks.base import Error, OutcomeSummary, summarize_outcome
from app.services.webhooks.registry import get_handler

logger = logging.getLogger(__name__)


def get_active_integration(db: Session, integration_id: UUID) -> WebhookIntegration | None:
    return db.query(WebhookIntegration).filter(
        WebhookIntegration.id == integration_id,
        WebhookIntegration.is_active.is_(True),
    ).first()


def verify_delivery(
    integration: WebhookIntegration,
    body: bytes,
    signature: str | None,
) -> bool:
    """Integrations without a secret accept unsigned deliveries."""
    if not integration.secret_key_encrypted:
        return True
    secret = decrypt_secret(integration.secret_key_encrypted)
    return verify_webhook_signature(secret, body, signature)


def parse_payload(body: bytes) -> dict:
    """
    Decode a JSON object body.

    Raises:
        ValueError: Body is not valid JSON or not an object
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValueError("Invalid JSON")
    if not isinstance(data, dict):
        raise ValueError("Invalid JSON")
    return data


def start_event_log(
    db: Session,
    integration: WebhookIntegration,
    payload: dict,
) -> WebhookEventLog:
    """Insert the pending audit row and commit it before processing."""
    event_type = payload.get("event_type")
    event_id = payload.get("event_id")
    log = WebhookEventLog(
        integration_id=integration.id,
        organization_id=integration.organization_id,
        event_type=event_type if isinstance(event_type, str) and event_type else "unknown",
        external_event_id=str(event_id) if isinstance(event_id, (str, int)) else None,
        event_data=payload,
        status=WebhookEventStatus.PENDING.value,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def finish_event_log(
    db: Session,
    log: WebhookEventLog,
    summary: OutcomeSummary,
    now: datetime,
) -> None:
    """Write the processing result. A log row is finalized only once."""
    if log.status != WebhookEventStatus.PENDING.value:
        raise RuntimeError(f"Webhook event log {log.id} already finalized")
    log.status = summary.log_status.value
    log.outcome = summary.kind.value
    log.trips_created = summary.trip_ids
    log.reason = summary.reason
    log.error_message = summary.error_message
    log.processed_at = now


def process_delivery(
    db: Session,
    integration: WebhookIntegration,
    payload: dict,
    now: datetime | None = None,
) -> OutcomeSummary:
    """
    Log, dispatch by provider, and record the outcome.

    Handler failures become an Error outcome; the trip (if any) and the
    finalized log row are committed together.
    """
    now = now or utcnow()
    log_context = build_log_context(
        org_id=str(integration.organization_id),
        integration_id=str(integration.id),
    )
    log = start_event_log(db, integration, payload)

    try:
        handler = get_handler(integration.provider)
        outcome = handler.process(db, integration, payload, now)
    except Exception as exc:
        db.rollback()
        logger.exception("Webhook processing failed", extra=log_context)
        outcome = Error(cause=str(exc) or exc.__class__.__name__)

    summary = summarize_outcome(outcome)
    finish_event_log(db, log, summary, now)
    db.commit()

    logger.info(
        "Webhook processed: outcome=%s trips=%d",
        summary.kind.value,
        summary.trips_created,
        extra=log_context,
    )
    return summary


def list_event_logs(
    db: Session,
    org_id: UUID,
    limit: int | None = None,
) -> list[WebhookEventLog]:
    """Most recent event logs for an organization, newest first."""
    return (
        db.query(WebhookEventLog)
        .filter(WebhookEventLog.organization_id == org_id)
        .order_by(WebhookEventLog.created_at.desc(), WebhookEventLog.id.desc())
        .limit(limit or settings.WEBHOOK_LOG_LIMIT)
        .all()
    )
