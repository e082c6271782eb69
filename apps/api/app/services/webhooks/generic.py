"""Pass-through handler for providers without trip creation."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.db.models import WebhookIntegration
from app.services.webhooks.base import Skipped, WebhookOutcome

logger = logging.getLogger(__name__)


class GenericWebhookHandler:
    def process(
        self,
        db: Session,
        integration: WebhookIntegration,
        payload: dict,
        now: datetime,
    ) -> WebhookOutcome:
        """Record the delivery only; no trips are created."""
        logger.info(
            "Webhook received for pass-through provider %s",
            integration.provider,
            extra={"integration_id": str(integration.id)},
        )
        return Skipped(reason=f"Provider {integration.provider} does not create trips")
