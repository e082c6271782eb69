"""Permission registry with metadata for UI and validation.

All permissions are defined here with labels, descriptions, and categories.
Static role defaults live in ROLE_DEFAULTS; database rows can grant or
revoke on top of them (see services/permission_service.py).

Precedence: org row > global row > role default
Super admin: always has all permissions (immutable)
"""

from dataclasses import dataclass
from enum import Enum


class PermissionKey(str, Enum):
    """Permission keys used by routers and the permission service."""

    DASHBOARD_VIEW = "view_dashboard"
    CLIENTS_VIEW = "view_clients"
    TRIPS_VIEW = "view_trips"
    TRIPS_CREATE = "create_trips"
    TRIPS_MANAGE = "manage_trips"
    TRIPS_UPDATE_STATUS = "update_trip_status"
    INTEGRATIONS_MANAGE = "manage_integrations"
    INTEGRATION_LOGS_VIEW = "view_integration_logs"
    ROLES_VIEW = "view_roles"
    ROLES_MANAGE = "manage_roles"
    FEATURE_FLAGS_MANAGE = "manage_feature_flags"


P = PermissionKey


@dataclass(frozen=True)
class PermissionDef:
    """Permission definition with metadata."""
    key: str
    label: str
    description: str
    category: str
    super_admin_only: bool = False  # Cannot be granted through role overrides


class PermissionCategory(str, Enum):
    """Permission categories for UI grouping."""
    NAVIGATION = "Navigation"
    TRIPS = "Trips"
    INTEGRATIONS = "Integrations"
    ADMINISTRATION = "Administration"


# =============================================================================
# Permission Registry
# =============================================================================

PERMISSION_REGISTRY: dict[str, PermissionDef] = {
    P.DASHBOARD_VIEW.value: PermissionDef(
        P.DASHBOARD_VIEW.value, "View Dashboard",
        "Access the dispatch dashboard", PermissionCategory.NAVIGATION
    ),
    P.CLIENTS_VIEW.value: PermissionDef(
        P.CLIENTS_VIEW.value, "View Clients",
        "See client and client group lists", PermissionCategory.NAVIGATION
    ),

    # Trips
    P.TRIPS_VIEW.value: PermissionDef(
        P.TRIPS_VIEW.value, "View Trips",
        "See trip list and details", PermissionCategory.TRIPS
    ),
    P.TRIPS_CREATE.value: PermissionDef(
        P.TRIPS_CREATE.value, "Create Trips",
        "Book trips and recurring trip series", PermissionCategory.TRIPS
    ),
    P.TRIPS_MANAGE.value: PermissionDef(
        P.TRIPS_MANAGE.value, "Manage Trips",
        "Modify and delete trips and recurring series", PermissionCategory.TRIPS
    ),
    P.TRIPS_UPDATE_STATUS.value: PermissionDef(
        P.TRIPS_UPDATE_STATUS.value, "Update Trip Status",
        "Report pickups, drop-offs and no-shows", PermissionCategory.TRIPS
    ),

    # Integrations
    P.INTEGRATIONS_MANAGE.value: PermissionDef(
        P.INTEGRATIONS_MANAGE.value, "Manage Integrations",
        "Connect calendar webhooks and edit trip creation rules",
        PermissionCategory.INTEGRATIONS
    ),
    P.INTEGRATION_LOGS_VIEW.value: PermissionDef(
        P.INTEGRATION_LOGS_VIEW.value, "View Integration Logs",
        "Read webhook delivery logs", PermissionCategory.INTEGRATIONS
    ),

    # Administration
    P.ROLES_VIEW.value: PermissionDef(
        P.ROLES_VIEW.value, "View Role Permissions",
        "View effective permissions for each role", PermissionCategory.ADMINISTRATION
    ),
    P.ROLES_MANAGE.value: PermissionDef(
        P.ROLES_MANAGE.value, "Manage Role Permissions",
        "Grant or revoke permissions per role", PermissionCategory.ADMINISTRATION
    ),
    P.FEATURE_FLAGS_MANAGE.value: PermissionDef(
        P.FEATURE_FLAGS_MANAGE.value, "Manage Feature Flags",
        "Toggle feature flags", PermissionCategory.ADMINISTRATION,
        super_admin_only=True
    ),
}


# =============================================================================
# Default Role Permissions
# =============================================================================

# Which permissions each role has by default (before database overrides)
ROLE_DEFAULTS: dict[str, set[str]] = {
    "super_admin": set(PERMISSION_REGISTRY.keys()),  # All permissions
    "corporate_admin": {
        "view_dashboard",
        "view_clients",
        "view_trips",
        "create_trips",
        "manage_trips",
        "update_trip_status",
        "manage_integrations",
        "view_integration_logs",
        "view_roles",
        "manage_roles",
    },
    "program_admin": {
        "view_dashboard",
        "view_clients",
        "view_trips",
        "create_trips",
        "manage_trips",
        "update_trip_status",
        "view_integration_logs",
        "view_roles",
    },
    "program_user": {
        "view_dashboard",
        "view_clients",
        "view_trips",
        "create_trips",
    },
    "driver": {
        "view_trips",
        "update_trip_status",
    },
}


# =============================================================================
# Helper Functions
# =============================================================================

def get_all_permissions() -> list[PermissionDef]:
    """Get all permissions sorted by category."""
    return sorted(PERMISSION_REGISTRY.values(), key=lambda p: (p.category, p.key))


def is_valid_permission(key: str) -> bool:
    """Check if permission key exists."""
    return key in PERMISSION_REGISTRY


def is_super_admin_only(key: str) -> bool:
    """Check if permission can only be held by super admins."""
    perm = PERMISSION_REGISTRY.get(key)
    return perm.super_admin_only if perm else False
