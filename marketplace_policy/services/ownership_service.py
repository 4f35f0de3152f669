"""Ownership index - read-only lookups that build OwnershipFacts.

Most facts come straight off the row (see core.access.facts_from_resource).
This module covers the ones that need a join:

- advisor notes / revisions -> client record's business and consumer
- messages -> the conversation's business and consumer
- trust disclosures -> the listing's business
- business memberships -> the business's active owners
- creates whose parent record must agree with the draft
"""

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import facts_from_resource
from marketplace_policy.core.policies import OwnershipFacts
from marketplace_policy.db.enums import MembershipRole, MembershipStatus, ResourceType
from marketplace_policy.db.models import (
    AdvisorNote,
    AdvisorNoteRevision,
    BusinessMembership,
    ClientRecord,
    Conversation,
    Lead,
    Listing,
    Message,
    Review,
    TrustDisclosure,
)


def facts_for_client_record(record: ClientRecord) -> OwnershipFacts:
    """Facts shared by every note hanging off a client record."""
    return OwnershipFacts(
        business_id=record.business_id,
        consumer_user_id=record.consumer_user_id,
    )


def facts_for_note(db: Session, note: AdvisorNote) -> OwnershipFacts:
    record = note.client_record or db.get(ClientRecord, note.client_record_id)
    if record is None:
        return OwnershipFacts()
    return facts_for_client_record(record)


def facts_for_revision(db: Session, revision: AdvisorNoteRevision) -> OwnershipFacts:
    note = revision.note or db.get(AdvisorNote, revision.note_id)
    if note is None:
        return OwnershipFacts()
    return facts_for_note(db, note)


def facts_for_conversation(conversation: Conversation) -> OwnershipFacts:
    return facts_from_resource(ResourceType.CONVERSATION, conversation)


def facts_for_message(db: Session, message: Message) -> OwnershipFacts:
    conversation = message.conversation or db.get(Conversation, message.conversation_id)
    if conversation is None:
        return OwnershipFacts()
    return facts_for_conversation(conversation)


def facts_for_disclosure(db: Session, disclosure: TrustDisclosure) -> OwnershipFacts:
    listing = db.get(Listing, disclosure.listing_id)
    return OwnershipFacts(
        business_id=listing.business_id if listing else None,
        is_active=bool(disclosure.is_active),
    )


def facts_for_membership(db: Session, business_id: UUID, user_id: UUID) -> OwnershipFacts:
    """Membership (or invitation draft) of `user_id` in `business_id`."""
    owners = (
        db.query(BusinessMembership.user_id)
        .filter(
            BusinessMembership.business_id == business_id,
            BusinessMembership.role == MembershipRole.OWNER.value,
            BusinessMembership.status == MembershipStatus.ACTIVE.value,
        )
        .all()
    )
    return OwnershipFacts(
        business_id=business_id,
        target_user_id=user_id,
        business_owner_ids=frozenset(row.user_id for row in owners),
    )


def facts_for_new_conversation(
    business_id: UUID,
    consumer_user_id: UUID | None,
    lead: Lead | None,
) -> OwnershipFacts:
    """Draft conversation; a linked lead must name the same parties."""
    return OwnershipFacts(
        business_id=business_id,
        consumer_user_id=consumer_user_id,
        related_business_id=lead.business_id if lead else None,
        related_consumer_user_id=lead.consumer_user_id if lead else None,
    )


def facts_for_new_review(
    consumer_user_id: UUID | None,
    listing: Listing,
    lead: Lead,
) -> OwnershipFacts:
    """Draft review: the lead must be the reviewer's and target the listing's business."""
    return OwnershipFacts(
        business_id=listing.business_id,
        consumer_user_id=consumer_user_id,
        related_business_id=lead.business_id,
        related_consumer_user_id=lead.consumer_user_id,
    )


def facts_for_new_dispute(review: Review, requester_user_id: UUID | None) -> OwnershipFacts:
    return OwnershipFacts(
        business_id=review.business_id,
        requester_user_id=requester_user_id,
        related_business_id=review.business_id,
    )


def facts_for_new_reply(review: Review, business_id: UUID) -> OwnershipFacts:
    return OwnershipFacts(
        business_id=business_id,
        related_business_id=review.business_id,
    )


def facts_for(db: Session, resource_type: ResourceType, resource: Any) -> OwnershipFacts:
    """Facts for any stored resource, joining where the row alone is not enough."""
    if resource_type is ResourceType.ADVISOR_NOTE:
        return facts_for_note(db, resource)
    if resource_type is ResourceType.ADVISOR_NOTE_REVISION:
        return facts_for_revision(db, resource)
    if resource_type is ResourceType.MESSAGE:
        return facts_for_message(db, resource)
    if resource_type is ResourceType.TRUST_DISCLOSURE:
        return facts_for_disclosure(db, resource)
    if resource_type is ResourceType.BUSINESS_MEMBERSHIP:
        return facts_for_membership(db, resource.business_id, resource.user_id)
    return facts_from_resource(resource_type, resource)


def facts_by_id(
    db: Session,
    resource_type: ResourceType,
    resources: Iterable[Any],
) -> dict[UUID, OwnershipFacts]:
    """Batch form of facts_for, keyed by resource id (for filter_readable)."""
    return {resource.id: facts_for(db, resource_type, resource) for resource in resources}
