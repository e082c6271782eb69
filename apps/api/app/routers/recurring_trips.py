"""Recurring trips router - weekly series and their trip instances."""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.deps import ensure_org_access, get_db, require_csrf_header, require_permission
from app.core.permissions import PermissionKey as P
from app.schemas.auth import UserSession
from app.schemas.recurring_trip import (
    RecurringTripCreate,
    RecurringTripCreateResponse,
    RecurringTripDelete,
    RecurringTripModify,
    RecurringTripRead,
    RecurringTripScopeResponse,
)
from app.services import recurring_trip_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_template_or_404(db: Session, session: UserSession, recurring_trip_id: UUID):
    template = recurring_trip_service.get_recurring_trip(db, session.org_id, recurring_trip_id)
    if not template:
        raise HTTPException(status_code=404, detail="Recurring trip not found")
    return template


@router.post(
    "",
    response_model=RecurringTripCreateResponse,
    dependencies=[Depends(require_csrf_header)],
)
def create_recurring_trips(
    data: RecurringTripCreate,
    session: UserSession = Depends(require_permission(P.TRIPS_CREATE)),
    db: Session = Depends(get_db),
):
    """
    Create a recurring series and expand it into trips.

    One template is stored per selected day. Templates and trips are
    written in one transaction.
    """
    ensure_org_access(session, data.organization_id)
    try:
        batch = recurring_trip_service.create_recurring_trips(
            db,
            org_id=data.organization_id,
            user_id=session.user_id,
            selection_type=data.selection_type,
            client_id=data.client_id,
            client_group_id=data.client_group_id,
            pickup_address=data.pickup_address,
            dropoff_address=data.dropoff_address,
            scheduled_time=data.scheduled_time,
            frequency=data.frequency,
            days_of_week=data.days_of_week,
            duration=data.duration,
            trip_type=data.trip_type,
            trip_nickname=data.trip_nickname,
            notes=data.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError:
        logger.exception("Recurring trip creation failed")
        raise HTTPException(status_code=500, detail="Failed to create recurring trips")

    template_ids = [template.id for template in batch.templates]
    return RecurringTripCreateResponse(
        success=True,
        recurring_trip_id=template_ids[0],
        recurring_trip_ids=template_ids,
        trip_instances_created=batch.trips_created,
        message=(
            f"Created {len(template_ids)} recurring trip(s) "
            f"with {batch.trips_created} trip instances"
        ),
    )


@router.get("/organization/{organization_id}", response_model=list[RecurringTripRead])
def list_recurring_trips(
    organization_id: UUID,
    session: UserSession = Depends(require_permission(P.TRIPS_VIEW)),
    db: Session = Depends(get_db),
):
    """Active templates with their count of future trips."""
    ensure_org_access(session, organization_id)
    rows = recurring_trip_service.list_recurring_trips(db, organization_id)
    return [
        RecurringTripRead.model_validate(template).model_copy(
            update={"future_instance_count": count}
        )
        for template, count in rows
    ]


@router.delete(
    "/{recurring_trip_id}",
    response_model=RecurringTripScopeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def delete_recurring_trip(
    recurring_trip_id: UUID,
    data: RecurringTripDelete = Body(...),
    session: UserSession = Depends(require_permission(P.TRIPS_MANAGE)),
    db: Session = Depends(get_db),
):
    """
    Delete one trip of a series, or end the series.

    all_future deactivates the template and deletes trips from now on;
    past trips are kept.
    """
    template = _get_template_or_404(db, session, recurring_trip_id)
    try:
        count = recurring_trip_service.delete_series(
            db,
            template=template,
            scope=data.scope.value,
            trip_instance_id=data.trip_instance_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return RecurringTripScopeResponse(success=True, scope=data.scope, count=count)


@router.patch(
    "/{recurring_trip_id}/modify",
    response_model=RecurringTripScopeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def modify_recurring_trip(
    recurring_trip_id: UUID,
    data: RecurringTripModify,
    session: UserSession = Depends(require_permission(P.TRIPS_MANAGE)),
    db: Session = Depends(get_db),
):
    """Modify one trip of a series, or the template and all future trips."""
    template = _get_template_or_404(db, session, recurring_trip_id)
    try:
        count = recurring_trip_service.modify_series(
            db,
            template=template,
            scope=data.scope.value,
            updates=data.updates.model_dump(exclude_unset=True),
            trip_instance_id=data.trip_instance_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return RecurringTripScopeResponse(success=True, scope=data.scope, count=count)
