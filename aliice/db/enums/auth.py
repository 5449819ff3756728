"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Organization roles.

    - ADMIN: org settings, user management, destructive actions
    - STAFF: day-to-day CRM, canvas, chat and marketing work
    """

    ADMIN = "admin"
    STAFF = "staff"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
