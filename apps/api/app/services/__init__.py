"""Service layer modules."""

# Import service modules (not individual functions) for cleaner access
from app.services import permission_service
from app.services import recurring_trip_service
from app.services import trip_service
from app.services import webhook_ingest_service
from app.services import webhook_integration_service

__all__ = [
    "permission_service",
    "recurring_trip_service",
    "trip_service",
    "webhook_ingest_service",
    "webhook_integration_service",
]
