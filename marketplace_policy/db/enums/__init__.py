"""Enum definitions for application constants."""

from marketplace_policy.db.enums.audit import AUDIT_VOCABULARY_VERSION, AuditAction
from marketplace_policy.db.enums.auth import (
    USER_ROLE_VALUES,
    MembershipRole,
    MembershipStatus,
    Role,
)
from marketplace_policy.db.enums.marketplace import (
    VALID_LEAD_TRANSITIONS,
    ClaimStatus,
    DisputeStatus,
    LeadStatus,
    ReplyStatus,
    ReviewStatus,
)
from marketplace_policy.db.enums.permissions import Action, ResourceType
from marketplace_policy.db.enums.trust import (
    BADGE_DISCLOSURE_KIND,
    BadgeField,
    ConsentType,
    DisclosureKind,
    VerificationLevel,
)

__all__ = [
    "AUDIT_VOCABULARY_VERSION",
    "AuditAction",
    "USER_ROLE_VALUES",
    "MembershipRole",
    "MembershipStatus",
    "Role",
    "VALID_LEAD_TRANSITIONS",
    "ClaimStatus",
    "DisputeStatus",
    "LeadStatus",
    "ReplyStatus",
    "ReviewStatus",
    "Action",
    "ResourceType",
    "BADGE_DISCLOSURE_KIND",
    "BadgeField",
    "ConsentType",
    "DisclosureKind",
    "VerificationLevel",
]
