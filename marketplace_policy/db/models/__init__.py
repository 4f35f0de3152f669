"""SQLAlchemy ORM models."""

from marketplace_policy.db.models.audit import AuditEvent, AuditLedgerImmutableError
from marketplace_policy.db.models.auth import Business, BusinessMembership, User, utcnow
from marketplace_policy.db.models.marketplace import (
    AdvisorNote,
    AdvisorNoteRevision,
    ClaimRequest,
    ClientRecord,
    Conversation,
    Lead,
    Message,
)
from marketplace_policy.db.models.trust import (
    PUBLIC_LISTING_FIELDS,
    Listing,
    Review,
    ReviewDispute,
    ReviewReply,
    TrustConsent,
    TrustDisclosure,
)

__all__ = [
    "AuditEvent",
    "AuditLedgerImmutableError",
    "Business",
    "BusinessMembership",
    "User",
    "utcnow",
    "AdvisorNote",
    "AdvisorNoteRevision",
    "ClaimRequest",
    "ClientRecord",
    "Conversation",
    "Lead",
    "Message",
    "PUBLIC_LISTING_FIELDS",
    "Listing",
    "Review",
    "ReviewDispute",
    "ReviewReply",
    "TrustConsent",
    "TrustDisclosure",
]
