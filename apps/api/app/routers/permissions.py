"""Permissions router - API endpoints for RBAC management.

Endpoints for:
- Reading the caller's effective permissions
- Granting/revoking role permissions (org or global rows)
- Toggling feature flags (enhanced_permissions gates database rows)
- Invalidating the permission cache
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import (
    get_current_session,
    get_db,
    get_permission_service,
    require_csrf_header,
    require_permission,
)
from app.core.permissions import PermissionKey as P, get_all_permissions
from app.db.enums import ROLES_CROSS_ORG
from app.schemas.auth import UserSession
from app.schemas.permission import (
    FeatureFlagRead,
    FeatureFlagUpdate,
    MyPermissionsResponse,
    PermissionInfo,
    RolePermissionsResponse,
    RolePermissionsUpdate,
)
from app.services.permission_service import PermissionService


router = APIRouter(prefix="/permissions", tags=["Permissions"])


@router.get("/available", response_model=list[PermissionInfo])
def list_available_permissions(
    session: UserSession = Depends(require_permission(P.ROLES_VIEW)),
):
    """All permissions with labels for the role editor."""
    return [
        PermissionInfo(
            key=p.key,
            label=p.label,
            description=p.description,
            category=p.category.value,
        )
        for p in get_all_permissions()
    ]


@router.get("/me", response_model=MyPermissionsResponse)
def get_my_permissions(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    service: PermissionService = Depends(get_permission_service),
):
    """Effective permissions for the current session."""
    return MyPermissionsResponse(
        role=session.role.value,
        organization_id=session.org_id,
        enhanced_permissions=service.is_enhanced(db, session.org_id),
        permissions=service.effective_permissions(db, session.org_id, session.role.value),
    )


@router.put(
    "/roles/{role}",
    response_model=RolePermissionsResponse,
    dependencies=[Depends(require_csrf_header)],
)
def update_role_permissions(
    role: str,
    data: RolePermissionsUpdate,
    session: UserSession = Depends(require_permission(P.ROLES_MANAGE)),
    db: Session = Depends(get_db),
    service: PermissionService = Depends(get_permission_service),
):
    """
    Grant or revoke permissions for a role.

    Rows only take effect while enhanced_permissions is enabled for the org.
    """
    if data.is_global and session.role not in ROLES_CROSS_ORG:
        raise HTTPException(status_code=403, detail="Only super admins can change global permissions")
    org_id = None if data.is_global else session.org_id
    try:
        service.set_role_permissions(db, org_id=org_id, role=role, permissions=data.permissions)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return RolePermissionsResponse(
        role=role,
        organization_id=org_id,
        permissions=service.effective_permissions(db, org_id, role),
    )


@router.put(
    "/feature-flags/{flag_name}",
    response_model=FeatureFlagRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_feature_flag(
    flag_name: str,
    data: FeatureFlagUpdate,
    session: UserSession = Depends(require_permission(P.FEATURE_FLAGS_MANAGE)),
    db: Session = Depends(get_db),
    service: PermissionService = Depends(get_permission_service),
):
    """Enable or disable a feature flag globally or for one organization."""
    return service.set_feature_flag(
        db,
        flag_name=flag_name,
        org_id=data.organization_id,
        is_enabled=data.is_enabled,
    )


@router.post(
    "/cache/invalidate",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def invalidate_permission_cache(
    session: UserSession = Depends(require_permission(P.ROLES_MANAGE)),
    service: PermissionService = Depends(get_permission_service),
):
    """Drop cached role permissions and flags; the next check reloads them."""
    service.invalidate()
