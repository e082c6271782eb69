"""Webhook handler interface and processing outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Union
from uuid import UUID

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from app.db.enums import WebhookEventStatus, WebhookOutcomeKind
from app.db.models import WebhookIntegration


# =============================================================================
# Outcomes
# =============================================================================

@dataclass(frozen=True)
class Created:
    trip_id: UUID


@dataclass(frozen=True)
class Filtered:
    reason: str


@dataclass(frozen=True)
class Skipped:
    reason: str


@dataclass(frozen=True)
class Duplicate:
    trip_id: UUID


@dataclass(frozen=True)
class ClientNotFound:
    reason: str = "No matching client found"


@dataclass(frozen=True)
class Error:
    cause: str


WebhookOutcome = Union[Created, Filtered, Skipped, Duplicate, ClientNotFound, Error]


@dataclass(frozen=True)
class OutcomeSummary:
    """How one outcome is recorded in the event log and the HTTP response."""
    kind: WebhookOutcomeKind
    log_status: WebhookEventStatus
    processed: bool
    trip_ids: list[str]
    reason: str | None = None
    error_message: str | None = None

    @property
    def trips_created(self) -> int:
        return len(self.trip_ids)


def summarize_outcome(outcome: WebhookOutcome) -> OutcomeSummary:
    """Map every outcome variant onto log status and response fields."""
    if isinstance(outcome, Created):
        return OutcomeSummary(
            kind=WebhookOutcomeKind.CREATED,
            log_status=WebhookEventStatus.SUCCESS,
            processed=True,
            trip_ids=[str(outcome.trip_id)],
        )
    if isinstance(outcome, Filtered):
        return OutcomeSummary(
            kind=WebhookOutcomeKind.FILTERED,
            log_status=WebhookEventStatus.SKIPPED,
            processed=False,
            trip_ids=[],
            reason=outcome.reason,
        )
    if isinstance(outcome, Skipped):
        return OutcomeSummary(
            kind=WebhookOutcomeKind.SKIPPED,
            log_status=WebhookEventStatus.SKIPPED,
            processed=True,
            trip_ids=[],
            reason=outcome.reason,
        )
    if isinstance(outcome, Duplicate):
        return OutcomeSummary(
            kind=WebhookOutcomeKind.DUPLICATE,
            log_status=WebhookEventStatus.SKIPPED,
            processed=False,
            trip_ids=[],
            reason=f"Event already produced trip {outcome.trip_id}",
        )
    if isinstance(outcome, ClientNotFound):
        return OutcomeSummary(
            kind=WebhookOutcomeKind.CLIENT_NOT_FOUND,
            log_status=WebhookEventStatus.ERROR,
            processed=False,
            trip_ids=[],
            reason=outcome.reason,
            error_message=outcome.reason,
        )
    if isinstance(outcome, Error):
        return OutcomeSummary(
            kind=WebhookOutcomeKind.ERROR,
            log_status=WebhookEventStatus.ERROR,
            processed=False,
            trip_ids=[],
            error_message=outcome.cause,
        )
    raise TypeError(f"Unknown webhook outcome: {outcome!r}")


# =============================================================================
# Handler interface
# =============================================================================

class WebhookHandler(Protocol):
    def process(
        self,
        db: Session,
        integration: WebhookIntegration,
        payload: dict,
        now: datetime,
    ) -> WebhookOutcome:
        """Turn one verified delivery into an outcome."""


async def read_body_safe(request: Request, max_bytes: int) -> bytes:
    """Read the raw body, rejecting anything over max_bytes with 413."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            if int(content_length) > max_bytes:
                raise HTTPException(413, "Payload too large")
        except ValueError:
            pass

    chunks: list[bytes] = []
    total = 0
    async for chunk in request.stream():
        if not chunk:
            continue
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(413, "Payload too large")
        chunks.append(chunk)
    return b"".join(chunks)
