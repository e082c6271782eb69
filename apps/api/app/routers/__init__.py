"""API routers."""

from app.routers.integrations import router as integrations_router
from app.routers.permissions import router as permissions_router
from app.routers.recurring_trips import router as recurring_trips_router
from app.routers.trips import router as trips_router
from app.routers.webhooks import router as webhooks_router

__all__ = [
    "integrations_router",
    "permissions_router",
    "recurring_trips_router",
    "trips_router",
    "webhooks_router",
]
