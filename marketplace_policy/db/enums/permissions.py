"""Resource and action identifiers used by the policy table."""

from enum import Enum


class ResourceType(str, Enum):
    LEAD = "lead"
    CONVERSATION = "conversation"
    MESSAGE = "message"
    CLAIM_REQUEST = "claim_request"
    ADVISOR_NOTE = "advisor_note"
    ADVISOR_NOTE_REVISION = "advisor_note_revision"
    REVIEW = "review"
    REVIEW_DISPUTE = "review_dispute"
    REVIEW_REPLY = "review_reply"
    TRUST_DISCLOSURE = "trust_disclosure"
    TRUST_CONSENT = "trust_consent"
    LISTING = "listing"
    USER = "user"
    BUSINESS_MEMBERSHIP = "business_membership"
    AUDIT_EVENT = "audit_event"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
