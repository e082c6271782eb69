"""Webhook handler registry."""

from __future__ import annotations

from app.db.enums import WebhookProvider
from app.services.webhooks.base import WebhookHandler
from app.services.webhooks.generic import GenericWebhookHandler
from app.services.webhooks.ritten import RittenWebhookHandler

_PASS_THROUGH = GenericWebhookHandler()

_HANDLERS: dict[str, WebhookHandler] = {
    WebhookProvider.RITTEN.value: RittenWebhookHandler(),
    WebhookProvider.GOOGLE_CALENDAR.value: _PASS_THROUGH,
    WebhookProvider.OUTLOOK.value: _PASS_THROUGH,
    WebhookProvider.GENERIC.value: _PASS_THROUGH,
}


def get_handler(name: str) -> WebhookHandler:
    handler = _HANDLERS.get(name)
    if not handler:
        raise KeyError(f"Unknown webhook handler: {name}")
    return handler
