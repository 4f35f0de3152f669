"""Audit enums."""

from enum import Enum


# Bump when an action is added to or removed from AuditAction.
AUDIT_VOCABULARY_VERSION = 1


class AuditAction(str, Enum):
    """
    Closed vocabulary of sensitive mutations that always produce an AuditEvent.

    Adding an action here is a deliberate extension of the ledger;
    callers cannot emit free-form action strings.
    """

    CONSENT_RECORDED = "trust.consent_recorded"
    LISTING_PROMOTION_STATE_CHANGED = "trust.listing_promotion_state_changed"
    LISTING_VERIFICATION_LEVEL_CHANGED = "trust.listing_verification_level_changed"
    REVIEW_DISPUTE_CREATED = "trust.review_dispute_created"
    REVIEW_REPLY_CREATED = "trust.review_reply_created"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a known audit action."""
        return value in cls._value2member_map_
