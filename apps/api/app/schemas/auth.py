"""Session schemas for authenticated dispatch requests."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.db.enums import ROLES_CROSS_ORG, Role


class TokenPayload(BaseModel):
    """Claims carried by the nemt_session JWT."""
    model_config = ConfigDict(extra="ignore")

    user_id: UUID = Field(alias="sub")
    org_id: UUID
    role: str
    token_version: int


class UserSession(BaseModel):
    """
    Caller identity resolved from the session cookie and membership row.

    Routers receive this from require_permission(...) and use it to scope
    every query to one organization.
    """
    user_id: UUID
    org_id: UUID
    role: Role
    email: str
    display_name: str

    @property
    def is_cross_org(self) -> bool:
        return self.role in ROLES_CROSS_ORG

    def can_access_org(self, organization_id: UUID) -> bool:
        return self.is_cross_org or organization_id == self.org_id
