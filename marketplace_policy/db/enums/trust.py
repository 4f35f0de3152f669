"""Trust disclosure and badge enums."""

from enum import Enum


class DisclosureKind(str, Enum):
    """Kinds of admin-approved disclosure. Each gates one badge."""

    PROMOTION = "promotion"
    VERIFICATION = "verification"


class VerificationLevel(str, Enum):
    """Listing verification badge. NONE is the only ungated value."""

    NONE = "none"
    BASIC = "basic"
    VERIFIED = "verified"
    ENHANCED = "enhanced"
    LICENCE_VERIFIED = "licence_verified"
    PREMIUM = "premium"


class ConsentType(str, Enum):
    DISCLOSURE_ACKNOWLEDGED = "disclosure_acknowledged"
    CONTACT_PERMISSION = "contact_permission"
    DATA_SHARING = "data_sharing"


class BadgeField(str, Enum):
    """Listing fields governed by the badge gate."""

    FEATURED = "is_featured"
    VERIFICATION_LEVEL = "verification_level"


# Disclosure kind that must be active before a badge field is elevated
BADGE_DISCLOSURE_KIND: dict[BadgeField, DisclosureKind] = {
    BadgeField.FEATURED: DisclosureKind.PROMOTION,
    BadgeField.VERIFICATION_LEVEL: DisclosureKind.VERIFICATION,
}
