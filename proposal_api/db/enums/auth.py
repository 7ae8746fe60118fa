"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Profile roles.

    - REPRESENTATIVE: owns proposals and their follow-ups
    - MANAGER: can act on any representative's proposals
    - ADMIN: manager rights plus daily sweep summaries
    """

    REPRESENTATIVE = "representative"
    MANAGER = "manager"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


# Roles allowed to manage follow-ups on proposals they do not own
ROLES_CAN_MANAGE_FOLLOW_UPS = frozenset({Role.MANAGER, Role.ADMIN})
