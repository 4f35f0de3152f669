"""Marketplace workflow enums (leads, claims, reviews)."""

from enum import Enum


class LeadStatus(str, Enum):
    """
    Lead lifecycle.

    new -> contacted -> booked -> converted, with declined reachable
    from every non-terminal state. converted and declined are terminal.
    """

    NEW = "new"
    CONTACTED = "contacted"
    BOOKED = "booked"
    CONVERTED = "converted"
    DECLINED = "declined"


VALID_LEAD_TRANSITIONS: dict[LeadStatus, frozenset[LeadStatus]] = {
    LeadStatus.NEW: frozenset({LeadStatus.CONTACTED, LeadStatus.DECLINED}),
    LeadStatus.CONTACTED: frozenset({LeadStatus.BOOKED, LeadStatus.DECLINED}),
    LeadStatus.BOOKED: frozenset({LeadStatus.CONVERTED, LeadStatus.DECLINED}),
    LeadStatus.CONVERTED: frozenset(),
    LeadStatus.DECLINED: frozenset(),
}


class ClaimStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"
    REMOVED = "removed"


class DisputeStatus(str, Enum):
    OPEN = "open"
    UNDER_REVIEW = "under_review"
    UPHELD = "upheld"
    DISMISSED = "dismissed"


class ReplyStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    REMOVED = "removed"
