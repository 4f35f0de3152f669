"""Review service - reviews, disputes and business replies.

Dispute creation and reply creation are audited trust mutations.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access, filter_readable
from marketplace_policy.core.exceptions import InvalidTransition, ResourceNotFound
from marketplace_policy.core.policies import (
    DISPUTE_MODERATION_FIELDS,
    REVIEW_CONTENT_FIELDS,
    REVIEW_MODERATION_FIELDS,
)
from marketplace_policy.db.enums import (
    Action,
    AuditAction,
    DisputeStatus,
    ReplyStatus,
    ResourceType,
    ReviewStatus,
)
from marketplace_policy.db.models import (
    Lead,
    Listing,
    Review,
    ReviewDispute,
    ReviewReply,
    utcnow,
)
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import ownership_service
from marketplace_policy.services.audit_service import MutationOutcome, audited

logger = logging.getLogger(__name__)


# =============================================================================
# Reviews
# =============================================================================

def get_review(db: Session, principal: Principal, review_id: UUID) -> Review:
    """Published reviews are public; others only to their author and admins."""
    review = db.query(Review).filter(Review.id == review_id).first()
    if review is None or not can_read(principal, ResourceType.REVIEW, review):
        raise ResourceNotFound("Review not found")
    return review


def list_published_reviews(db: Session, listing_id: UUID) -> list[Review]:
    return (
        db.query(Review)
        .filter(
            Review.listing_id == listing_id,
            Review.status == ReviewStatus.PUBLISHED.value,
        )
        .order_by(Review.published_at.desc())
        .all()
    )


def _validate_rating(rating: int) -> None:
    if not 1 <= rating <= 5:
        raise ValueError("rating must be between 1 and 5")


def create_review(
    db: Session,
    principal: Principal,
    lead_id: UUID,
    rating: int,
    body: str | None = None,
    listing_id: UUID | None = None,
) -> Review:
    """
    Review a business the consumer has a lead with.

    The review targets the lead's listing unless `listing_id` is given;
    either way the listing must belong to the lead's business.
    """
    lead = db.get(Lead, lead_id)
    if lead is None or not can_read(principal, ResourceType.LEAD, lead):
        raise ResourceNotFound("Lead not found")

    target_listing_id = listing_id or lead.listing_id
    listing = db.get(Listing, target_listing_id) if target_listing_id else None
    if listing is None:
        raise ResourceNotFound("Listing not found")

    facts = ownership_service.facts_for_new_review(principal.user_id, listing, lead)
    check_access(principal, ResourceType.REVIEW, Action.CREATE, facts=facts)
    _validate_rating(rating)

    review = Review(
        lead_id=lead.id,
        consumer_user_id=principal.user_id,
        business_id=listing.business_id,
        listing_id=listing.id,
        rating=rating,
        body=body,
        status=ReviewStatus.PENDING.value,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    return review


def update_review(
    db: Session,
    principal: Principal,
    review_id: UUID,
    rating: int | None = None,
    body: str | None = None,
) -> Review:
    """Author edits before publication."""
    review = get_review(db, principal, review_id)
    changes = {}
    if rating is not None:
        _validate_rating(rating)
        changes["rating"] = rating
    if body is not None:
        changes["body"] = body
    check_access(
        principal,
        ResourceType.REVIEW,
        Action.UPDATE,
        resource=review,
        fields=set(changes) or REVIEW_CONTENT_FIELDS,
    )
    for name, value in changes.items():
        setattr(review, name, value)
    db.commit()
    db.refresh(review)
    return review


def moderate_review(db: Session, principal: Principal, review_id: UUID, status: ReviewStatus | str) -> Review:
    """Publish, reject or remove a review (admin only)."""
    review = get_review(db, principal, review_id)
    target = ReviewStatus(status)
    check_access(
        principal,
        ResourceType.REVIEW,
        Action.UPDATE,
        resource=review,
        fields=REVIEW_MODERATION_FIELDS,
    )

    review.status = target.value
    review.moderated_by_user_id = principal.user_id
    if target is ReviewStatus.PUBLISHED and review.published_at is None:
        review.published_at = utcnow()
    db.commit()
    db.refresh(review)

    logger.info("Review %s moderated to %s by %s", review.id, target.value, principal.user_id)
    return review


# =============================================================================
# Disputes
# =============================================================================

def get_dispute(db: Session, principal: Principal, dispute_id: UUID) -> ReviewDispute:
    dispute = db.get(ReviewDispute, dispute_id)
    if dispute is None or not can_read(principal, ResourceType.REVIEW_DISPUTE, dispute):
        raise ResourceNotFound("Dispute not found")
    return dispute


@audited(AuditAction.REVIEW_DISPUTE_CREATED, entity_type=ResourceType.REVIEW_DISPUTE.value)
def create_dispute(
    db: Session,
    principal: Principal,
    review_id: UUID,
    reason_text: str,
) -> MutationOutcome[ReviewDispute]:
    """
    Open a dispute on a review.

    A requester with an open dispute on the same review gets that dispute
    back; no second row or audit event is written.
    """
    review = get_review(db, principal, review_id)
    facts = ownership_service.facts_for_new_dispute(review, principal.user_id)
    check_access(principal, ResourceType.REVIEW_DISPUTE, Action.CREATE, facts=facts)

    existing = (
        db.query(ReviewDispute)
        .filter(
            ReviewDispute.review_id == review.id,
            ReviewDispute.requester_user_id == principal.user_id,
            ReviewDispute.status == DisputeStatus.OPEN.value,
        )
        .first()
    )
    if existing is not None:
        return MutationOutcome(existing, changed=False)

    dispute = ReviewDispute(
        review_id=review.id,
        requester_user_id=principal.user_id,
        business_id=review.business_id,
        reason_text=reason_text,
        status=DisputeStatus.OPEN.value,
    )
    db.add(dispute)
    db.flush()
    return MutationOutcome(
        dispute,
        metadata={"review_id": review.id, "business_id": review.business_id},
    )


def moderate_dispute(
    db: Session,
    principal: Principal,
    dispute_id: UUID,
    status: DisputeStatus | str,
) -> ReviewDispute:
    """Move a dispute through review (admin only). Closed disputes stay closed."""
    dispute = get_dispute(db, principal, dispute_id)
    target = DisputeStatus(status)
    check_access(
        principal,
        ResourceType.REVIEW_DISPUTE,
        Action.UPDATE,
        resource=dispute,
        fields=DISPUTE_MODERATION_FIELDS,
    )
    if dispute.status in (DisputeStatus.UPHELD.value, DisputeStatus.DISMISSED.value):
        raise InvalidTransition(f"Dispute already {dispute.status}")

    dispute.status = target.value
    db.commit()
    db.refresh(dispute)
    return dispute


# =============================================================================
# Replies
# =============================================================================

def _live_reply(db: Session, review_id: UUID, business_id: UUID) -> ReviewReply | None:
    return (
        db.query(ReviewReply)
        .filter(
            ReviewReply.review_id == review_id,
            ReviewReply.business_id == business_id,
            ReviewReply.deleted_at.is_(None),
        )
        .first()
    )


@audited(AuditAction.REVIEW_REPLY_CREATED, entity_type=ResourceType.REVIEW_REPLY.value)
def create_reply(
    db: Session,
    principal: Principal,
    review_id: UUID,
    reply_text: str,
) -> MutationOutcome[ReviewReply]:
    """
    Publish the business's reply to a review.

    Same text as the live reply: no-op. Different text: the live reply is
    soft-deleted and a new one published.
    """
    review = get_review(db, principal, review_id)
    facts = ownership_service.facts_for_new_reply(review, review.business_id)
    check_access(principal, ResourceType.REVIEW_REPLY, Action.CREATE, facts=facts)

    now = utcnow()
    previous = _live_reply(db, review.id, review.business_id)
    if previous is not None:
        if previous.reply_text == reply_text and previous.status == ReplyStatus.PUBLISHED.value:
            return MutationOutcome(previous, changed=False)
        previous.deleted_at = now
        previous.status = ReplyStatus.REMOVED.value
        db.flush()

    reply = ReviewReply(
        review_id=review.id,
        business_id=review.business_id,
        responder_user_id=principal.user_id,
        reply_text=reply_text,
        status=ReplyStatus.PUBLISHED.value,
        published_at=now,
    )
    db.add(reply)
    db.flush()
    return MutationOutcome(
        reply,
        metadata={
            "review_id": review.id,
            "business_id": review.business_id,
            "replaced_reply_id": previous.id if previous else None,
        },
    )


def delete_reply(db: Session, principal: Principal, reply_id: UUID) -> ReviewReply:
    """Soft-delete a reply (owning business members)."""
    reply = db.get(ReviewReply, reply_id)
    if reply is None or not can_read(principal, ResourceType.REVIEW_REPLY, reply):
        raise ResourceNotFound("Reply not found")
    check_access(principal, ResourceType.REVIEW_REPLY, Action.DELETE, resource=reply)
    if reply.deleted_at is not None:
        return reply

    reply.deleted_at = utcnow()
    reply.status = ReplyStatus.REMOVED.value
    db.commit()
    db.refresh(reply)
    return reply


def list_replies(db: Session, principal: Principal, review_id: UUID) -> list[ReviewReply]:
    """Replies on a review the principal can see."""
    review = get_review(db, principal, review_id)
    replies = (
        db.query(ReviewReply)
        .filter(ReviewReply.review_id == review.id)
        .order_by(ReviewReply.created_at.asc())
        .all()
    )
    return filter_readable(principal, ResourceType.REVIEW_REPLY, replies)
