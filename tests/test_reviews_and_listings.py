"""
Reviews, disclosure copy, listing edits and user profiles.

Tests cover:
- Reviews tied to the reviewer's own lead and its business
- Author edits only before publication; admins moderate
- Disclosure drafts visible to the business until activated
- Listing profile edits versus admin-only fields
- Profile edits on one's own user row only
"""

import pytest

from marketplace_policy.core.exceptions import (
    PermissionDenied,
    ResourceNotFound,
    TenantIsolationViolation,
)
from marketplace_policy.db.enums import DisclosureKind, ReviewStatus
from marketplace_policy.db.models import Listing
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import (
    badge_service,
    listing_service,
    review_service,
    trust_service,
    user_service,
)


@pytest.fixture
def lead(factory, consumer, business_a, listing_a):
    return factory.lead(consumer, business_a, listing_a)


# =============================================================================
# Reviews
# =============================================================================

def test_consumer_reviews_own_lead(db, lead, listing_a, consumer, principal_for):
    review = review_service.create_review(db, principal_for(consumer), lead.id, 4, body="Good")

    assert review.listing_id == listing_a.id
    assert review.status == ReviewStatus.PENDING.value


def test_review_of_someone_elses_lead_is_not_found(db, factory, lead, principal_for):
    stranger = factory.user()

    with pytest.raises(ResourceNotFound):
        review_service.create_review(db, principal_for(stranger), lead.id, 1)


def test_review_must_target_the_leads_business(db, factory, lead, business_b, consumer, principal_for):
    other_listing = factory.listing(business_b)

    with pytest.raises(PermissionDenied):
        review_service.create_review(
            db, principal_for(consumer), lead.id, 5, listing_id=other_listing.id
        )


def test_rating_out_of_range(db, lead, consumer, principal_for):
    with pytest.raises(ValueError):
        review_service.create_review(db, principal_for(consumer), lead.id, 6)


def test_author_edits_until_published(db, lead, consumer, admin, principal_for):
    author = principal_for(consumer)
    review = review_service.create_review(db, author, lead.id, 3)

    review = review_service.update_review(db, author, review.id, rating=4)
    assert review.rating == 4

    review_service.moderate_review(db, principal_for(admin), review.id, ReviewStatus.PUBLISHED)

    with pytest.raises(PermissionDenied):
        review_service.update_review(db, author, review.id, body="Changed my mind")


def test_admin_publishes_review(db, lead, listing_a, consumer, admin, principal_for):
    review = review_service.create_review(db, principal_for(consumer), lead.id, 5)
    assert review_service.list_published_reviews(db, listing_a.id) == []

    published = review_service.moderate_review(db, principal_for(admin), review.id, "published")

    assert published.published_at is not None
    assert published.moderated_by_user_id == admin.id
    assert [r.id for r in review_service.list_published_reviews(db, listing_a.id)] == [review.id]


def test_pending_review_hidden_from_business(db, lead, consumer, advisor_a, principal_for):
    review = review_service.create_review(db, principal_for(consumer), lead.id, 2)

    with pytest.raises(ResourceNotFound):
        review_service.moderate_review(db, principal_for(advisor_a), review.id, "published")


def test_member_deletes_reply_other_business_cannot(db, factory, lead, listing_a, advisor_a, advisor_b, principal_for):
    review = factory.review(lead, listing_a)
    reply = review_service.create_reply(db, principal_for(advisor_a), review.id, "Thanks!")

    with pytest.raises(TenantIsolationViolation):
        review_service.delete_reply(db, principal_for(advisor_b), reply.id)

    deleted = review_service.delete_reply(db, principal_for(advisor_a), reply.id)

    assert deleted.deleted_at is not None
    assert review_service.list_replies(db, Principal.anonymous(), review.id) == []


# =============================================================================
# Disclosure copy
# =============================================================================

def test_disclosure_draft_visible_to_business_only(db, listing_a, advisor_a, principal_for):
    draft = trust_service.create_disclosure(
        db, principal_for(advisor_a), listing_a.id, DisclosureKind.PROMOTION, "Sponsored", "We pay for placement."
    )

    assert draft.is_active is False
    assert [d.id for d in trust_service.list_disclosures(db, principal_for(advisor_a), listing_a.id)] == [draft.id]
    assert trust_service.list_disclosures(db, Principal.anonymous(), listing_a.id) == []
    with pytest.raises(ResourceNotFound):
        trust_service.get_disclosure(db, Principal.anonymous(), draft.id)


def test_other_business_cannot_draft_disclosure(db, listing_a, advisor_b, principal_for):
    with pytest.raises(ResourceNotFound):
        trust_service.create_disclosure(
            db, principal_for(advisor_b), listing_a.id, "promotion", "Sponsored", "Copy"
        )


def test_copy_is_editable_only_while_inactive(db, listing_a, advisor_a, admin, principal_for):
    member = principal_for(advisor_a)
    draft = trust_service.create_disclosure(db, member, listing_a.id, "promotion", "Sponsored", "Copy")

    edited = trust_service.update_disclosure_copy(db, member, draft.id, {"headline": "Paid placement"})
    assert edited.headline == "Paid placement"

    with pytest.raises(ValueError):
        trust_service.update_disclosure_copy(db, member, draft.id, {"is_active": True})

    badge_service.activate_disclosure(db, draft.id, principal_for(admin))

    with pytest.raises(PermissionDenied):
        trust_service.update_disclosure_copy(db, member, draft.id, {"headline": "Changed after approval"})


# =============================================================================
# Listings
# =============================================================================

def test_member_edits_profile_fields(db, listing_a, advisor_a, principal_for):
    listing_service.update_listing(db, principal_for(advisor_a), listing_a.id, {"headline": "Tax and super"})

    db.expire_all()
    assert db.get(Listing, listing_a.id).headline == "Tax and super"


def test_only_admin_toggles_listing_visibility(db, listing_a, advisor_a, admin, principal_for):
    with pytest.raises(PermissionDenied):
        listing_service.update_listing(db, principal_for(advisor_a), listing_a.id, {"is_active": False})

    listing_service.update_listing(db, principal_for(admin), listing_a.id, {"is_active": False})

    db.expire_all()
    assert db.get(Listing, listing_a.id).is_active is False
    with pytest.raises(ResourceNotFound):
        listing_service.get_listing(db, Principal.anonymous(), listing_a.id)


def test_unknown_listing_field_rejected(db, listing_a, advisor_a, principal_for):
    with pytest.raises(ValueError):
        listing_service.update_listing(db, principal_for(advisor_a), listing_a.id, {"business_id": None})


def test_public_projection_hides_internal_fields(db, listing_a, advisor_a, principal_for):
    public = listing_service.project_listing(Principal.anonymous(), listing_a)
    full = listing_service.project_listing(principal_for(advisor_a), listing_a)

    assert "internal_notes" not in public
    assert "contact_email" not in public
    assert full["internal_notes"] == "internal only"


# =============================================================================
# Users
# =============================================================================

def test_user_edits_own_profile_only(db, factory, consumer, admin, principal_for):
    updated = user_service.update_profile(db, principal_for(consumer), consumer.id, "New Name")
    assert updated.display_name == "New Name"

    other = factory.user()
    with pytest.raises(ResourceNotFound):
        user_service.update_profile(db, principal_for(consumer), other.id, "Hacked")
    with pytest.raises(PermissionDenied):
        user_service.update_profile(db, principal_for(admin), consumer.id, "Renamed by admin")
