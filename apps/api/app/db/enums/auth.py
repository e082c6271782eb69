"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles with decreasing privilege levels.

    - SUPER_ADMIN: Platform operator, may act on any organization
    - CORPORATE_ADMIN: Owns an organization (integrations, role overrides)
    - PROGRAM_ADMIN: Runs dispatch for a program
    - PROGRAM_USER: Books trips for clients
    - DRIVER: Views assigned trips and reports status
    """

    SUPER_ADMIN = "super_admin"
    CORPORATE_ADMIN = "corporate_admin"
    PROGRAM_ADMIN = "program_admin"
    PROGRAM_USER = "program_user"
    DRIVER = "driver"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


# Roles allowed to read/write outside their own organization
ROLES_CROSS_ORG = {Role.SUPER_ADMIN}
