"""Structured logging helpers (PHI-safe)."""

from typing import Any

from fastapi import Request


def build_log_context(
    *,
    user_id: str | None = None,
    org_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    integration_id: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict.

    Only identifiers go in here. Client names, addresses and webhook
    payloads must never be passed to a logger.
    """
    fields = {
        "user_id": user_id,
        "org_id": org_id,
        "request_id": request_id,
        "route": route,
        "method": method,
        "integration_id": integration_id,
    }
    return {key: value for key, value in fields.items() if value}


def request_log_context(request: Request, **ids: str | None) -> dict[str, Any]:
    """Log context for a request: request id, route and method plus ids."""
    request_id = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
    return build_log_context(
        request_id=request_id,
        route=request.url.path,
        method=request.method,
        **ids,
    )
