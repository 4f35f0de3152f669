"""Centralized access policies for marketplace resources.

Each resource type maps to a ResourcePolicy holding one predicate per
action. Predicates are pure functions of (principal, ownership facts,
fields touched) and are combined with any_of/all_of. A missing clause is
a denial: there is no implicit allow.

Admin short-circuit (applied by the enforcement point, not here):
admins may read anything and may write fields listed in the policy's
`moderation_fields`.
"""

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from marketplace_policy.db.enums import Action, ResourceType
from marketplace_policy.db.models.trust import PUBLIC_LISTING_FIELDS
from marketplace_policy.schemas.auth import Principal


@dataclass(frozen=True)
class OwnershipFacts:
    """
    Ownership facts for one resource snapshot.

    business_id: tenant that owns the resource (notes/messages: derived)
    consumer_user_id: consumer owner, or the consumer a note is about
    requester_user_id: claim/dispute requester
    owner_user_id: consent owner
    target_user_id: the user row being read or changed
    business_owner_ids: users holding an active owner membership in
        business_id (membership changes)
    related_business_id / related_consumer_user_id: facts of the parent
        record (lead of a conversation or review, review of a dispute
        or reply) used to block cross-tenant creates
    """

    business_id: UUID | None = None
    consumer_user_id: UUID | None = None
    requester_user_id: UUID | None = None
    owner_user_id: UUID | None = None
    target_user_id: UUID | None = None
    business_owner_ids: frozenset[UUID] = frozenset()
    related_business_id: UUID | None = None
    related_consumer_user_id: UUID | None = None
    is_published: bool = False
    is_active: bool = False


Predicate = Callable[[Principal, OwnershipFacts, frozenset[str]], bool]


# =============================================================================
# Predicates
# =============================================================================

def deny(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return False


def anyone(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return True


def is_authenticated(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.is_authenticated


def is_admin(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.is_admin


def is_consumer_owner(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.user_id is not None and facts.consumer_user_id == principal.user_id


def is_tenant_member(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.is_authenticated and principal.is_member_of(facts.business_id)


def is_business_owner(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.user_id is not None and principal.user_id in facts.business_owner_ids


def is_requester(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.user_id is not None and facts.requester_user_id == principal.user_id


def is_owner(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.user_id is not None and facts.owner_user_id == principal.user_id


def is_self(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.user_id is not None and facts.target_user_id == principal.user_id


def is_published(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return facts.is_published


def is_active_resource(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return facts.is_active


def parent_business_matches(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    """Record and its parent belong to the same business (strict)."""
    return facts.related_business_id is not None and facts.related_business_id == facts.business_id


def linked_parent_matches(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    """Like parent_business_matches, but an unlinked record passes."""
    if facts.related_business_id is None and facts.related_consumer_user_id is None:
        return True
    return (
        facts.related_business_id == facts.business_id
        and facts.related_consumer_user_id == facts.consumer_user_id
    )


def parent_owned_by_principal(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    return principal.user_id is not None and facts.related_consumer_user_id == principal.user_id


def public_projection(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
    """No fields named, or only public listing fields."""
    return fields <= PUBLIC_LISTING_FIELDS


def fields_within(allowed: frozenset[str]) -> Predicate:
    """True when a non-empty set of touched fields is a subset of `allowed`."""
    def predicate(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
        return bool(fields) and fields <= allowed
    return predicate


def any_of(*predicates: Predicate) -> Predicate:
    def predicate(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
        return any(p(principal, facts, fields) for p in predicates)
    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    def predicate(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
        return all(p(principal, facts, fields) for p in predicates)
    return predicate


def not_(inner: Predicate) -> Predicate:
    def predicate(principal: Principal, facts: OwnershipFacts, fields: frozenset[str]) -> bool:
        return not inner(principal, facts, fields)
    return predicate


# =============================================================================
# Field classes
# =============================================================================

LEAD_STATUS_FIELDS = frozenset({"status"})
CLAIM_DECISION_FIELDS = frozenset({"status", "decided_by_user_id", "decided_at"})
NOTE_FIELDS = frozenset({"body"})
REVIEW_CONTENT_FIELDS = frozenset({"rating", "body"})
REVIEW_MODERATION_FIELDS = frozenset({"status", "published_at", "moderated_by_user_id"})
DISPUTE_MODERATION_FIELDS = frozenset({"status"})
REPLY_FIELDS = frozenset({"reply_text", "status", "published_at", "deleted_at"})
REPLY_MODERATION_FIELDS = frozenset({"status", "deleted_at"})
DISCLOSURE_COPY_FIELDS = frozenset({"headline", "disclosure_text", "display_order"})
DISCLOSURE_APPROVAL_FIELDS = frozenset(
    {"is_active", "approved_by_admin_id", "approved_at", "deactivated_at"}
)
BADGE_FIELDS = frozenset({"is_featured", "verification_level"})
LISTING_PROFILE_FIELDS = frozenset(
    {"display_name", "headline", "suburb", "contact_email", "internal_notes"}
)
LISTING_MODERATION_FIELDS = frozenset({"is_active"}) | BADGE_FIELDS
USER_PROFILE_FIELDS = frozenset({"display_name"})
USER_MODERATION_FIELDS = frozenset({"role", "is_active"})
MEMBERSHIP_MANAGE_FIELDS = frozenset({"role", "status", "invited_at", "revoked_at"})
MEMBERSHIP_ACCEPT_FIELDS = frozenset({"status", "accepted_at"})


# =============================================================================
# Policy Table
# =============================================================================

@dataclass(frozen=True)
class ResourcePolicy:
    """Per-action predicates + fields an admin may always write."""

    read: Predicate = deny
    create: Predicate = deny
    update: Predicate = deny
    delete: Predicate = deny
    moderation_fields: frozenset[str] = frozenset()

    def predicate_for(self, action: Action) -> Predicate:
        return {
            Action.READ: self.read,
            Action.CREATE: self.create,
            Action.UPDATE: self.update,
            Action.DELETE: self.delete,
        }[action]


_tenant_or_consumer_read = any_of(is_admin, is_consumer_owner, is_tenant_member)

_note_member = all_of(
    is_tenant_member,
    not_(is_consumer_owner),  # the note's subject never sees it
)

POLICIES: dict[ResourceType, ResourcePolicy] = {
    ResourceType.LEAD: ResourcePolicy(
        read=_tenant_or_consumer_read,
        create=any_of(is_admin, all_of(is_authenticated, is_consumer_owner)),
        update=any_of(
            is_admin,
            all_of(is_tenant_member, fields_within(LEAD_STATUS_FIELDS)),
        ),
        delete=is_admin,
        moderation_fields=LEAD_STATUS_FIELDS,
    ),
    ResourceType.CONVERSATION: ResourcePolicy(
        read=_tenant_or_consumer_read,
        create=all_of(
            linked_parent_matches,
            any_of(is_admin, is_consumer_owner, is_tenant_member),
        ),
        update=is_admin,
        delete=is_admin,
    ),
    ResourceType.MESSAGE: ResourcePolicy(
        read=_tenant_or_consumer_read,
        create=all_of(is_authenticated, any_of(is_consumer_owner, is_tenant_member)),
        delete=is_admin,
    ),
    ResourceType.CLAIM_REQUEST: ResourcePolicy(
        read=any_of(is_admin, is_requester),
        create=all_of(is_authenticated, is_requester),
        update=all_of(is_admin, fields_within(CLAIM_DECISION_FIELDS)),
        delete=is_admin,
        moderation_fields=CLAIM_DECISION_FIELDS,
    ),
    ResourceType.ADVISOR_NOTE: ResourcePolicy(
        read=any_of(is_admin, _note_member),
        create=_note_member,
        update=all_of(_note_member, fields_within(NOTE_FIELDS)),
    ),
    ResourceType.ADVISOR_NOTE_REVISION: ResourcePolicy(
        read=any_of(is_admin, _note_member),
        create=_note_member,
    ),
    ResourceType.REVIEW: ResourcePolicy(
        read=any_of(is_published, is_admin, is_consumer_owner),
        create=all_of(is_consumer_owner, parent_owned_by_principal, parent_business_matches),
        update=all_of(
            is_consumer_owner,
            not_(is_published),
            fields_within(REVIEW_CONTENT_FIELDS),
        ),
        delete=is_admin,
        moderation_fields=REVIEW_MODERATION_FIELDS,
    ),
    ResourceType.REVIEW_DISPUTE: ResourcePolicy(
        read=any_of(is_admin, is_requester, is_tenant_member),
        create=all_of(is_authenticated, is_requester, parent_business_matches),
        update=all_of(is_admin, fields_within(DISPUTE_MODERATION_FIELDS)),
        moderation_fields=DISPUTE_MODERATION_FIELDS,
    ),
    ResourceType.REVIEW_REPLY: ResourcePolicy(
        read=any_of(is_published, is_admin, is_tenant_member),
        create=all_of(is_tenant_member, parent_business_matches),
        update=all_of(is_tenant_member, fields_within(REPLY_FIELDS)),
        delete=is_tenant_member,
        moderation_fields=REPLY_MODERATION_FIELDS,
    ),
    ResourceType.TRUST_DISCLOSURE: ResourcePolicy(
        read=any_of(is_active_resource, is_admin, is_tenant_member),
        create=any_of(is_admin, is_tenant_member),
        update=all_of(
            is_tenant_member,
            not_(is_active_resource),
            fields_within(DISCLOSURE_COPY_FIELDS),
        ),
        moderation_fields=DISCLOSURE_APPROVAL_FIELDS,
    ),
    ResourceType.TRUST_CONSENT: ResourcePolicy(
        read=any_of(is_admin, is_owner),
        create=all_of(is_authenticated, is_owner),
    ),
    ResourceType.LISTING: ResourcePolicy(
        read=any_of(
            all_of(is_active_resource, public_projection),
            is_admin,
            is_tenant_member,
        ),
        create=any_of(is_admin, is_tenant_member),
        update=all_of(
            is_tenant_member,
            fields_within(LISTING_PROFILE_FIELDS | BADGE_FIELDS),
        ),
        delete=is_admin,
        moderation_fields=LISTING_MODERATION_FIELDS,
    ),
    ResourceType.USER: ResourcePolicy(
        read=any_of(is_admin, is_self),
        create=is_admin,
        update=all_of(is_self, fields_within(USER_PROFILE_FIELDS)),
        delete=all_of(is_admin, not_(is_self)),
        moderation_fields=USER_MODERATION_FIELDS,
    ),
    ResourceType.BUSINESS_MEMBERSHIP: ResourcePolicy(
        read=any_of(is_admin, is_self, is_tenant_member),
        create=any_of(is_admin, is_business_owner),
        update=any_of(
            all_of(is_business_owner, fields_within(MEMBERSHIP_MANAGE_FIELDS)),
            all_of(is_self, fields_within(MEMBERSHIP_ACCEPT_FIELDS)),
        ),
        moderation_fields=MEMBERSHIP_MANAGE_FIELDS,
    ),
    ResourceType.AUDIT_EVENT: ResourcePolicy(
        read=is_admin,
    ),
}


def get_policy(resource_type: ResourceType) -> ResourcePolicy:
    """Fetch a resource policy or raise KeyError."""
    return POLICIES[resource_type]
