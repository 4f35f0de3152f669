"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Principal roles.

    - ANONYMOUS: no authenticated identity (never stored on a user row)
    - CONSUMER: marketplace visitor who creates leads, reviews, consents
    - ADVISOR: works inside one or more businesses via memberships
    - ADMIN: platform moderation (claims, reviews, disclosures, roles)
    """

    ANONYMOUS = "anonymous"
    CONSUMER = "consumer"
    ADVISOR = "advisor"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_

    @classmethod
    def normalize(cls, value: object) -> "Role | None":
        """Map a stored role string onto a user role, or None if unknown."""
        if isinstance(value, Role):
            candidate = value.value
        elif isinstance(value, str):
            candidate = value.strip().lower()
        else:
            return None
        if candidate not in USER_ROLE_VALUES:
            return None
        return cls(candidate)


# Roles that may be persisted on a user row
USER_ROLE_VALUES = frozenset({"consumer", "advisor", "admin"})


class MembershipStatus(str, Enum):
    """Business membership lifecycle. Only ACTIVE grants visibility."""

    INVITED = "invited"
    ACTIVE = "active"
    REVOKED = "revoked"


class MembershipRole(str, Enum):
    """Role of a user inside a business."""

    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"
