"""Permission service for RBAC with ordered sources and a TTL cache.

Resolution order (first defined answer wins):
    org role rows > global role rows > static ROLE_DEFAULTS
Database rows only take part when the enhanced_permissions feature flag is
enabled for the organization.
Super admin: always has all permissions (immutable, no lookup)
Missing permission: defaults to False (deny)
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.permissions import (
    PERMISSION_REGISTRY,
    ROLE_DEFAULTS,
    is_super_admin_only,
    is_valid_permission,
)
from app.db.enums import Role
from app.db.models import FeatureFlag, RolePermission

logger = logging.getLogger(__name__)

ENHANCED_PERMISSIONS_FLAG = "enhanced_permissions"


# =============================================================================
# Cache
# =============================================================================

@dataclass(frozen=True)
class PermissionSnapshot:
    """Role permission rows and feature flags loaded in one refresh."""
    role_rows: dict[tuple[uuid.UUID | None, str, str], bool] = field(default_factory=dict)
    flags: dict[tuple[str, uuid.UUID | None], bool] = field(default_factory=dict)


class PermissionCache:
    """
    TTL cache of role_permissions and feature_flags.

    The clock is injected so staleness can be tested without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = (
            settings.PERMISSION_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        )
        self._clock = clock
        self._snapshot: PermissionSnapshot | None = None
        self._loaded_at: float | None = None

    def is_stale(self) -> bool:
        if self._snapshot is None or self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at >= self.ttl_seconds

    def refresh(self, db: Session) -> None:
        role_rows = {
            (row.organization_id, row.role, row.permission): row.is_granted
            for row in db.query(RolePermission).all()
        }
        flags = {
            (row.flag_name, row.organization_id): row.is_enabled
            for row in db.query(FeatureFlag).all()
        }
        self._snapshot = PermissionSnapshot(role_rows=role_rows, flags=flags)
        self._loaded_at = self._clock()
        logger.debug(
            "Permission cache refreshed: %d role rows, %d flags",
            len(role_rows),
            len(flags),
        )

    def invalidate(self) -> None:
        self._snapshot = None
        self._loaded_at = None

    def ensure_fresh(self, db: Session) -> None:
        if self.is_stale():
            self.refresh(db)

    @property
    def snapshot(self) -> PermissionSnapshot:
        return self._snapshot or PermissionSnapshot()

    def role_permission(
        self,
        org_id: uuid.UUID | None,
        role: str,
        permission: str,
    ) -> bool | None:
        return self.snapshot.role_rows.get((org_id, role, permission))

    def feature_enabled(self, flag_name: str, org_id: uuid.UUID | None) -> bool:
        """Org-specific flag overrides the global one; absent means off."""
        flags = self.snapshot.flags
        if org_id is not None and (flag_name, org_id) in flags:
            return flags[(flag_name, org_id)]
        return flags.get((flag_name, None), False)


# =============================================================================
# Sources
# =============================================================================

class PermissionSource(Protocol):
    def check(
        self,
        role: str,
        permission: str,
        org_id: uuid.UUID | None,
    ) -> bool | None:
        """True/False when this source decides, None to defer."""


class OrgRolePermissionSource:
    def __init__(self, cache: PermissionCache):
        self.cache = cache

    def check(self, role, permission, org_id):
        if org_id is None:
            return None
        return self.cache.role_permission(org_id, role, permission)


class GlobalRolePermissionSource:
    def __init__(self, cache: PermissionCache):
        self.cache = cache

    def check(self, role, permission, org_id):
        return self.cache.role_permission(None, role, permission)


class StaticRoleSource:
    def __init__(self, role_defaults: dict[str, set[str]] | None = None):
        self.role_defaults = ROLE_DEFAULTS if role_defaults is None else role_defaults

    def check(self, role, permission, org_id):
        defaults = self.role_defaults.get(role)
        if defaults is None:
            return None
        return permission in defaults


def resolve_permission(
    sources: Iterable[PermissionSource],
    role: str,
    permission: str,
    org_id: uuid.UUID | None,
) -> bool:
    """First defined answer from the ordered sources; deny if none."""
    if role == Role.SUPER_ADMIN.value:
        return True
    for source in sources:
        result = source.check(role, permission, org_id)
        if result is not None:
            return result
    return False


# =============================================================================
# Service
# =============================================================================

class PermissionService:
    """Owns the permission cache; one instance per application."""

    def __init__(self, cache: PermissionCache | None = None):
        self.cache = cache or PermissionCache()
        self._static = StaticRoleSource()
        self._db_sources: list[PermissionSource] = [
            OrgRolePermissionSource(self.cache),
            GlobalRolePermissionSource(self.cache),
        ]

    def is_enhanced(self, db: Session, org_id: uuid.UUID | None) -> bool:
        self.cache.ensure_fresh(db)
        return self.cache.feature_enabled(ENHANCED_PERMISSIONS_FLAG, org_id)

    def sources_for(self, db: Session, org_id: uuid.UUID | None) -> list[PermissionSource]:
        if self.is_enhanced(db, org_id):
            return [*self._db_sources, self._static]
        return [self._static]

    def has_permission(
        self,
        db: Session,
        org_id: uuid.UUID | None,
        role: str,
        permission: str,
    ) -> bool:
        return resolve_permission(self.sources_for(db, org_id), role, permission, org_id)

    def effective_permissions(
        self,
        db: Session,
        org_id: uuid.UUID | None,
        role: str,
    ) -> list[str]:
        sources = self.sources_for(db, org_id)
        return sorted(
            key
            for key in PERMISSION_REGISTRY
            if resolve_permission(sources, role, key, org_id)
        )

    def invalidate(self) -> None:
        self.cache.invalidate()

    # -------------------------------------------------------------------------
    # Mutations (each one invalidates the cache)
    # -------------------------------------------------------------------------

    def set_role_permissions(
        self,
        db: Session,
        *,
        org_id: uuid.UUID | None,
        role: str,
        permissions: dict[str, bool],
    ) -> int:
        """
        Upsert grant/revoke rows for a role.

        org_id None writes global rows. Returns rows written.
        """
        if not Role.has_value(role):
            raise ValueError(f"Unknown role: {role}")
        if role == Role.SUPER_ADMIN.value:
            raise ValueError("Super admin permissions cannot be changed")
        for permission, is_granted in permissions.items():
            if not is_valid_permission(permission):
                raise ValueError(f"Invalid permission: {permission}")
            if is_granted and is_super_admin_only(permission):
                raise ValueError(
                    f"Permission '{permission}' is reserved for super admins"
                )

        count = 0
        for permission, is_granted in permissions.items():
            existing = db.query(RolePermission).filter(
                RolePermission.organization_id.is_(None)
                if org_id is None
                else RolePermission.organization_id == org_id,
                RolePermission.role == role,
                RolePermission.permission == permission,
            ).first()
            if existing:
                existing.is_granted = is_granted
            else:
                db.add(RolePermission(
                    organization_id=org_id,
                    role=role,
                    permission=permission,
                    is_granted=is_granted,
                ))
            count += 1
        db.commit()
        self.invalidate()

        logger.info(
            "Role permissions updated for %s (%d rows)",
            role,
            count,
            extra={"org_id": str(org_id) if org_id else None},
        )
        return count

    def set_feature_flag(
        self,
        db: Session,
        *,
        flag_name: str,
        org_id: uuid.UUID | None,
        is_enabled: bool,
    ) -> FeatureFlag:
        flag = db.query(FeatureFlag).filter(
            FeatureFlag.flag_name == flag_name,
            FeatureFlag.organization_id.is_(None)
            if org_id is None
            else FeatureFlag.organization_id == org_id,
        ).first()
        if flag:
            flag.is_enabled = is_enabled
        else:
            flag = FeatureFlag(
                flag_name=flag_name,
                organization_id=org_id,
                is_enabled=is_enabled,
            )
            db.add(flag)
        db.commit()
        db.refresh(flag)
        self.invalidate()

        logger.info("Feature flag %s set to %s", flag_name, is_enabled)
        return flag
