"""Trips router - trip list, detail, deletion and status changes."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_permission
from app.core.permissions import PermissionKey as P
from app.db.enums import TripStatus
from app.schemas.auth import UserSession
from app.schemas.trip import TripRead, TripStatusUpdate
from app.services import trip_service

router = APIRouter()


@router.get("", response_model=list[TripRead])
def list_trips(
    recurring_trip_id: UUID | None = Query(None),
    status: TripStatus | None = Query(None),
    start: datetime | None = Query(None, description="Pickup at or after (ISO 8601)"),
    end: datetime | None = Query(None, description="Pickup before (ISO 8601)"),
    limit: int = Query(trip_service.DEFAULT_PAGE_SIZE, ge=1, le=1000),
    session: UserSession = Depends(require_permission(P.TRIPS_VIEW)),
    db: Session = Depends(get_db),
):
    """List trips for the current organization ordered by pickup time."""
    for value in (start, end):
        if value is not None and value.tzinfo is None:
            raise HTTPException(status_code=400, detail="start/end must include a UTC offset")
    return trip_service.list_trips(
        db,
        session.org_id,
        recurring_trip_id=recurring_trip_id,
        status=status.value if status else None,
        start=start,
        end=end,
        limit=limit,
    )


@router.get("/{trip_id}", response_model=TripRead)
def get_trip(
    trip_id: UUID,
    session: UserSession = Depends(require_permission(P.TRIPS_VIEW)),
    db: Session = Depends(get_db),
):
    trip = trip_service.get_trip(db, session.org_id, trip_id)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


@router.delete(
    "/{trip_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_trip(
    trip_id: UUID,
    session: UserSession = Depends(require_permission(P.TRIPS_MANAGE)),
    db: Session = Depends(get_db),
):
    """Delete a single trip."""
    trip = trip_service.get_trip(db, session.org_id, trip_id)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    trip_service.delete_trip(db, trip)


@router.patch(
    "/{trip_id}/status",
    response_model=TripRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_trip_status(
    trip_id: UUID,
    data: TripStatusUpdate,
    session: UserSession = Depends(require_permission(P.TRIPS_UPDATE_STATUS)),
    db: Session = Depends(get_db),
):
    """Change trip status. Invalid transitions return 400 with allowed statuses."""
    trip = trip_service.get_trip(db, session.org_id, trip_id)
    if not trip:
        raise HTTPException(status_code=404, detail="Trip not found")
    try:
        return trip_service.update_trip_status(db, trip, data.status.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
