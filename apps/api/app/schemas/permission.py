"""Permission schemas."""

from uuid import UUID

from pydantic import BaseModel, Field


class PermissionInfo(BaseModel):
    key: str
    label: str
    description: str
    category: str


class MyPermissionsResponse(BaseModel):
    role: str
    organization_id: UUID
    enhanced_permissions: bool
    permissions: list[str]


class RolePermissionsUpdate(BaseModel):
    """
    Grant (True) or revoke (False) permissions for a role.

    Rows are written for the caller's organization unless is_global is set,
    which only super admins may do.
    """
    permissions: dict[str, bool] = Field(..., min_length=1)
    is_global: bool = False


class RolePermissionsResponse(BaseModel):
    role: str
    organization_id: UUID | None
    permissions: list[str]


class FeatureFlagUpdate(BaseModel):
    is_enabled: bool
    organization_id: UUID | None = None  # None = global


class FeatureFlagRead(BaseModel):
    flag_name: str
    organization_id: UUID | None
    is_enabled: bool

    model_config = {"from_attributes": True}
