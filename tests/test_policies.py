"""
Policy table and enforcement point tests (no DB required).

Tests cover:
- Lead / conversation tenant isolation
- Claim requests visible to requester and admin only
- Advisor notes hidden from their subject consumer
- Role escalation guard
- Anonymous reads of published / active resources
- Admin moderation short-circuit
- Unknown resource types fail closed
"""

import uuid

import pytest

from marketplace_policy.core.access import (
    AccessDecision,
    authorize,
    can_read,
    check_access,
    filter_readable,
)
from marketplace_policy.core.exceptions import (
    PermissionDenied,
    RoleEscalationBlocked,
    TenantIsolationViolation,
)
from marketplace_policy.core.policies import (
    POLICIES,
    OwnershipFacts,
    all_of,
    any_of,
    fields_within,
    is_admin,
    is_authenticated,
    not_,
)
from marketplace_policy.db.enums import Action, ResourceType, Role
from marketplace_policy.db.models import PUBLIC_LISTING_FIELDS
from marketplace_policy.schemas.auth import Principal


BUSINESS_A = uuid.uuid4()
BUSINESS_B = uuid.uuid4()


def consumer(user_id=None) -> Principal:
    return Principal(role=Role.CONSUMER, user_id=user_id or uuid.uuid4())


def advisor(*business_ids) -> Principal:
    return Principal(role=Role.ADVISOR, user_id=uuid.uuid4(), business_ids=frozenset(business_ids))


def admin() -> Principal:
    return Principal(role=Role.ADMIN, user_id=uuid.uuid4())


ANON = Principal.anonymous()


# =============================================================================
# Predicate combinators
# =============================================================================

def test_fields_within_rejects_empty_field_set():
    predicate = fields_within(frozenset({"status"}))
    assert predicate(ANON, OwnershipFacts(), frozenset()) is False
    assert predicate(ANON, OwnershipFacts(), frozenset({"status"})) is True
    assert predicate(ANON, OwnershipFacts(), frozenset({"status", "summary"})) is False


def test_combinators_compose():
    predicate = all_of(is_authenticated, not_(is_admin))
    assert predicate(consumer(), OwnershipFacts(), frozenset()) is True
    assert predicate(admin(), OwnershipFacts(), frozenset()) is False
    assert any_of(is_admin, is_authenticated)(ANON, OwnershipFacts(), frozenset()) is False


def test_every_resource_type_has_a_policy():
    assert set(POLICIES) == set(ResourceType)


# =============================================================================
# Leads
# =============================================================================

def test_lead_visible_to_owning_consumer_and_business_only():
    owner = consumer()
    lead = {"business_id": BUSINESS_A, "consumer_user_id": owner.user_id}

    assert can_read(owner, ResourceType.LEAD, lead)
    assert can_read(advisor(BUSINESS_A), ResourceType.LEAD, lead)
    assert can_read(admin(), ResourceType.LEAD, lead)
    assert not can_read(advisor(BUSINESS_B), ResourceType.LEAD, lead)
    assert not can_read(consumer(), ResourceType.LEAD, lead)
    assert not can_read(ANON, ResourceType.LEAD, lead)


def test_cross_tenant_lead_read_is_tenant_isolation_violation():
    lead = {"business_id": BUSINESS_A, "consumer_user_id": uuid.uuid4()}

    decision = authorize(advisor(BUSINESS_B), ResourceType.LEAD, Action.READ, lead)

    assert decision.allowed is False
    assert decision.denial is TenantIsolationViolation


def test_consumer_cannot_create_lead_for_someone_else():
    actor = consumer()
    own = {"business_id": BUSINESS_A, "consumer_user_id": actor.user_id}
    other = {"business_id": BUSINESS_A, "consumer_user_id": uuid.uuid4()}

    assert authorize(actor, ResourceType.LEAD, Action.CREATE, own).allowed
    assert not authorize(actor, ResourceType.LEAD, Action.CREATE, other).allowed


def test_business_member_may_only_change_lead_status():
    member = advisor(BUSINESS_A)
    lead = {"business_id": BUSINESS_A, "consumer_user_id": uuid.uuid4()}

    assert authorize(member, ResourceType.LEAD, Action.UPDATE, lead, fields={"status"}).allowed
    assert not authorize(member, ResourceType.LEAD, Action.UPDATE, lead, fields={"consumer_user_id"}).allowed
    assert not authorize(member, ResourceType.LEAD, Action.DELETE, lead).allowed


def test_conversation_create_rejects_mismatched_lead():
    actor = consumer()
    facts = OwnershipFacts(
        business_id=BUSINESS_A,
        consumer_user_id=actor.user_id,
        related_business_id=BUSINESS_B,
        related_consumer_user_id=actor.user_id,
    )
    assert not authorize(actor, ResourceType.CONVERSATION, Action.CREATE, facts=facts).allowed


# =============================================================================
# Claims
# =============================================================================

def test_claim_request_not_visible_to_claimed_business():
    requester = consumer()
    claim = {"business_id": BUSINESS_A, "requester_user_id": requester.user_id}

    assert can_read(requester, ResourceType.CLAIM_REQUEST, claim)
    assert can_read(admin(), ResourceType.CLAIM_REQUEST, claim)
    assert not can_read(advisor(BUSINESS_A), ResourceType.CLAIM_REQUEST, claim)


def test_only_admin_decides_claims():
    requester = consumer()
    claim = {"business_id": BUSINESS_A, "requester_user_id": requester.user_id}
    fields = {"status", "decided_by_user_id", "decided_at"}

    assert authorize(admin(), ResourceType.CLAIM_REQUEST, Action.UPDATE, claim, fields=fields).allowed
    assert not authorize(requester, ResourceType.CLAIM_REQUEST, Action.UPDATE, claim, fields=fields).allowed


# =============================================================================
# Advisor notes
# =============================================================================

def test_note_hidden_from_its_subject_consumer():
    subject = consumer()
    facts = OwnershipFacts(business_id=BUSINESS_A, consumer_user_id=subject.user_id)

    assert can_read(advisor(BUSINESS_A), ResourceType.ADVISOR_NOTE, facts=facts)
    assert not can_read(subject, ResourceType.ADVISOR_NOTE, facts=facts)
    assert not can_read(subject, ResourceType.ADVISOR_NOTE_REVISION, facts=facts)


def test_subject_consumer_denied_even_with_membership():
    subject_id = uuid.uuid4()
    subject_as_member = Principal(
        role=Role.ADVISOR, user_id=subject_id, business_ids=frozenset({BUSINESS_A})
    )
    facts = OwnershipFacts(business_id=BUSINESS_A, consumer_user_id=subject_id)

    assert not can_read(subject_as_member, ResourceType.ADVISOR_NOTE, facts=facts)


def test_consumer_who_owns_a_business_reads_its_notes():
    # A consumer whose claim was approved holds an owner membership
    claimant = Principal(role=Role.CONSUMER, user_id=uuid.uuid4(), business_ids=frozenset({BUSINESS_A}))
    about_someone_else = OwnershipFacts(business_id=BUSINESS_A, consumer_user_id=uuid.uuid4())
    about_claimant = OwnershipFacts(business_id=BUSINESS_A, consumer_user_id=claimant.user_id)

    assert can_read(claimant, ResourceType.ADVISOR_NOTE, facts=about_someone_else)
    assert not can_read(claimant, ResourceType.ADVISOR_NOTE, facts=about_claimant)


def test_notes_are_never_deleted():
    facts = OwnershipFacts(business_id=BUSINESS_A)
    assert not authorize(advisor(BUSINESS_A), ResourceType.ADVISOR_NOTE, Action.DELETE, facts=facts).allowed
    assert not authorize(admin(), ResourceType.ADVISOR_NOTE, Action.DELETE, facts=facts).allowed


# =============================================================================
# Users and roles
# =============================================================================

@pytest.mark.parametrize("role", [Role.CONSUMER, Role.ADVISOR, Role.ADMIN])
def test_no_one_changes_their_own_role(role):
    actor = Principal(role=role, user_id=uuid.uuid4())
    target = {"id": actor.user_id}

    decision = authorize(actor, ResourceType.USER, Action.UPDATE, target, fields={"role"})

    assert decision.allowed is False
    assert decision.denial is RoleEscalationBlocked
    assert decision.reason == "Users cannot change their own role"


def test_non_admin_cannot_change_another_users_role():
    decision = authorize(advisor(BUSINESS_A), ResourceType.USER, Action.UPDATE, {"id": uuid.uuid4()}, fields={"role"})
    assert decision.denial is RoleEscalationBlocked


def test_admin_changes_another_users_role():
    assert authorize(admin(), ResourceType.USER, Action.UPDATE, {"id": uuid.uuid4()}, fields={"role"}).allowed


def test_user_edits_own_display_name_only():
    actor = consumer()
    target = {"id": actor.user_id}
    assert authorize(actor, ResourceType.USER, Action.UPDATE, target, fields={"display_name"}).allowed
    assert not authorize(actor, ResourceType.USER, Action.UPDATE, target, fields={"is_active"}).allowed


# =============================================================================
# Public reads
# =============================================================================

def test_anonymous_reads_published_review_only():
    published = {"business_id": BUSINESS_A, "consumer_user_id": uuid.uuid4(), "status": "published"}
    pending = {**published, "status": "pending"}

    assert can_read(ANON, ResourceType.REVIEW, published)
    assert not can_read(ANON, ResourceType.REVIEW, pending)


def test_anonymous_reads_public_projection_of_active_listing():
    listing = {"business_id": BUSINESS_A, "is_active": True}

    assert can_read(ANON, ResourceType.LISTING, listing, fields=PUBLIC_LISTING_FIELDS)
    assert not can_read(ANON, ResourceType.LISTING, listing, fields={"internal_notes"})
    assert not can_read(ANON, ResourceType.LISTING, listing, fields=PUBLIC_LISTING_FIELDS | {"internal_notes"})
    assert not can_read(ANON, ResourceType.LISTING, {**listing, "is_active": False}, fields=PUBLIC_LISTING_FIELDS)


def test_listing_read_without_fields_means_public_projection():
    listing = {"business_id": BUSINESS_A, "is_active": True}

    assert authorize(ANON, ResourceType.LISTING, Action.READ, listing).allowed
    assert authorize(ANON, "listing", "read", listing).allowed
    assert not authorize(ANON, ResourceType.LISTING, Action.READ, {**listing, "is_active": False}).allowed


def test_removed_reply_not_public():
    reply = {"business_id": BUSINESS_A, "status": "published", "deleted_at": None}
    assert can_read(ANON, ResourceType.REVIEW_REPLY, reply)
    assert not can_read(ANON, ResourceType.REVIEW_REPLY, {**reply, "deleted_at": "2026-01-01"})


def test_anonymous_cannot_write_anything():
    for resource_type in ResourceType:
        for action in (Action.CREATE, Action.UPDATE, Action.DELETE):
            assert not authorize(ANON, resource_type, action).allowed


# =============================================================================
# Admin short-circuit
# =============================================================================

def test_admin_reads_everything():
    for resource_type in ResourceType:
        assert can_read(admin(), resource_type, {"business_id": BUSINESS_A})


def test_admin_writes_limited_to_moderation_fields():
    listing = {"business_id": BUSINESS_A, "is_active": True}
    assert authorize(admin(), ResourceType.LISTING, Action.UPDATE, listing, fields={"is_active"}).allowed
    assert not authorize(admin(), ResourceType.LISTING, Action.UPDATE, listing, fields={"display_name"}).allowed


def test_member_cannot_toggle_listing_active():
    listing = {"business_id": BUSINESS_A, "is_active": True}
    assert not authorize(advisor(BUSINESS_A), ResourceType.LISTING, Action.UPDATE, listing, fields={"is_active"}).allowed


def test_audit_events_readable_by_admin_only():
    assert can_read(admin(), ResourceType.AUDIT_EVENT)
    assert not can_read(advisor(BUSINESS_A), ResourceType.AUDIT_EVENT)
    assert not authorize(admin(), ResourceType.AUDIT_EVENT, Action.CREATE).allowed


# =============================================================================
# Enforcement point behaviour
# =============================================================================

def test_unknown_resource_type_fails_closed():
    decision = authorize(admin(), "invoice", "read")
    assert decision == AccessDecision.deny(PermissionDenied, "Unknown resource type or action")


def test_check_access_raises_matching_denial():
    lead = {"business_id": BUSINESS_A, "consumer_user_id": uuid.uuid4()}
    with pytest.raises(TenantIsolationViolation):
        check_access(advisor(BUSINESS_B), ResourceType.LEAD, Action.READ, lead)
    with pytest.raises(PermissionDenied):
        check_access(consumer(), ResourceType.LEAD, Action.READ, lead)


def test_filter_readable_drops_other_tenants_rows():
    member = advisor(BUSINESS_A)
    leads = [
        {"id": uuid.uuid4(), "business_id": BUSINESS_A, "consumer_user_id": uuid.uuid4()},
        {"id": uuid.uuid4(), "business_id": BUSINESS_B, "consumer_user_id": uuid.uuid4()},
    ]
    assert filter_readable(member, ResourceType.LEAD, leads) == [leads[0]]
    assert filter_readable(advisor(BUSINESS_B, uuid.uuid4()), ResourceType.LEAD, leads[:1]) == []


def test_decision_to_dict():
    assert AccessDecision.allow().to_dict() == {"allowed": True}
    assert authorize(ANON, ResourceType.LEAD, Action.READ, {}).to_dict() == {
        "allowed": False,
        "reason": PermissionDenied.default_reason,
    }


# =============================================================================
# Business memberships
# =============================================================================

def test_membership_changes_need_owner_or_admin():
    owner = advisor(BUSINESS_A)
    staff = advisor(BUSINESS_A)
    invitee = advisor()
    facts = OwnershipFacts(
        business_id=BUSINESS_A,
        target_user_id=invitee.user_id,
        business_owner_ids=frozenset({owner.user_id}),
    )

    for actor in (owner, admin()):
        assert authorize(actor, ResourceType.BUSINESS_MEMBERSHIP, Action.CREATE, facts=facts).allowed
        assert authorize(
            actor, ResourceType.BUSINESS_MEMBERSHIP, Action.UPDATE, facts=facts, fields={"status", "revoked_at"}
        ).allowed

    assert not authorize(staff, ResourceType.BUSINESS_MEMBERSHIP, Action.CREATE, facts=facts).allowed
    assert authorize(
        invitee, ResourceType.BUSINESS_MEMBERSHIP, Action.UPDATE, facts=facts, fields={"status", "accepted_at"}
    ).allowed
    assert not authorize(
        invitee, ResourceType.BUSINESS_MEMBERSHIP, Action.UPDATE, facts=facts, fields={"role", "status"}
    ).allowed
    assert not can_read(advisor(BUSINESS_B), ResourceType.BUSINESS_MEMBERSHIP, facts=facts)
