"""Access router - ask the enforcement point about a prospective action."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace_policy.core.access import authorize, can_read
from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.db.enums import ResourceType
from marketplace_policy.db.models import (
    AdvisorNote,
    AdvisorNoteRevision,
    AuditEvent,
    BusinessMembership,
    ClaimRequest,
    Conversation,
    Lead,
    Listing,
    Message,
    Review,
    ReviewDispute,
    ReviewReply,
    TrustConsent,
    TrustDisclosure,
    User,
)
from marketplace_policy.schemas.auth import AccessCheckRequest, AccessCheckResponse, Principal
from marketplace_policy.services import ownership_service

router = APIRouter()

NOT_FOUND = {"allowed": False, "reason": "Not found"}

MODEL_BY_RESOURCE = {
    ResourceType.LEAD: Lead,
    ResourceType.CONVERSATION: Conversation,
    ResourceType.MESSAGE: Message,
    ResourceType.CLAIM_REQUEST: ClaimRequest,
    ResourceType.ADVISOR_NOTE: AdvisorNote,
    ResourceType.ADVISOR_NOTE_REVISION: AdvisorNoteRevision,
    ResourceType.REVIEW: Review,
    ResourceType.REVIEW_DISPUTE: ReviewDispute,
    ResourceType.REVIEW_REPLY: ReviewReply,
    ResourceType.TRUST_DISCLOSURE: TrustDisclosure,
    ResourceType.TRUST_CONSENT: TrustConsent,
    ResourceType.LISTING: Listing,
    ResourceType.USER: User,
    ResourceType.AUDIT_EVENT: AuditEvent,
    ResourceType.BUSINESS_MEMBERSHIP: BusinessMembership,
}


@router.post("/check", response_model=AccessCheckResponse)
def check(
    data: AccessCheckRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """
    Evaluate authorize() for the calling principal.

    A missing resource id, and a resource the principal cannot read,
    both report "Not found": the answer never confirms another tenant's
    rows exist.
    """
    if not ResourceType.has_value(data.resource_type):
        return authorize(principal, data.resource_type, data.action).to_dict()
    resource_type = ResourceType(data.resource_type)

    facts = None
    if data.resource_id is not None:
        resource = db.get(MODEL_BY_RESOURCE[resource_type], data.resource_id)
        if resource is None:
            return NOT_FOUND
        facts = ownership_service.facts_for(db, resource_type, resource)
        if not can_read(principal, resource_type, facts=facts):
            return NOT_FOUND

    return authorize(principal, resource_type, data.action, facts=facts, fields=data.fields).to_dict()
