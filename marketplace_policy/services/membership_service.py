"""Membership service - business membership lookups and lifecycle.

Memberships are the only source of advisor-side visibility, so every
change goes through the policy table: admins and active owners of the
business invite and revoke; the invitee accepts.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access
from marketplace_policy.core.exceptions import InvalidTransition, ResourceNotFound
from marketplace_policy.core.policies import MEMBERSHIP_ACCEPT_FIELDS, MEMBERSHIP_MANAGE_FIELDS
from marketplace_policy.db.enums import Action, MembershipRole, MembershipStatus, ResourceType
from marketplace_policy.db.models import BusinessMembership, utcnow
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import ownership_service


logger = logging.getLogger(__name__)


def get_active_business_ids(db: Session, user_id: UUID) -> frozenset[UUID]:
    """Businesses where the user has an active membership."""
    rows = (
        db.query(BusinessMembership.business_id)
        .filter(
            BusinessMembership.user_id == user_id,
            BusinessMembership.status == MembershipStatus.ACTIVE.value,
        )
        .all()
    )
    return frozenset(row.business_id for row in rows)


def get_membership(db: Session, business_id: UUID, user_id: UUID) -> BusinessMembership | None:
    """Get membership scoped to a business (any status)."""
    return (
        db.query(BusinessMembership)
        .filter(
            BusinessMembership.business_id == business_id,
            BusinessMembership.user_id == user_id,
        )
        .first()
    )


def _get_visible_membership(
    db: Session,
    principal: Principal,
    business_id: UUID,
    user_id: UUID,
) -> BusinessMembership:
    membership = get_membership(db, business_id, user_id)
    if membership is None:
        raise ResourceNotFound("Membership not found")
    facts = ownership_service.facts_for(db, ResourceType.BUSINESS_MEMBERSHIP, membership)
    if not can_read(principal, ResourceType.BUSINESS_MEMBERSHIP, facts=facts):
        raise ResourceNotFound("Membership not found")
    return membership


def invite_member(
    db: Session,
    principal: Principal,
    business_id: UUID,
    user_id: UUID,
    role: MembershipRole = MembershipRole.STAFF,
) -> BusinessMembership:
    """
    Invite a user into a business. Invited members see nothing until
    they accept.

    Re-inviting a revoked member resets the row to invited. Inviting a
    user who is already invited or active is a no-op.
    """
    facts = ownership_service.facts_for_membership(db, business_id, user_id)
    check_access(principal, ResourceType.BUSINESS_MEMBERSHIP, Action.CREATE, facts=facts)

    membership = get_membership(db, business_id, user_id)
    if membership is None:
        membership = BusinessMembership(
            business_id=business_id,
            user_id=user_id,
            role=role.value,
            status=MembershipStatus.INVITED.value,
        )
        db.add(membership)
    elif membership.status == MembershipStatus.REVOKED.value:
        check_access(
            principal,
            ResourceType.BUSINESS_MEMBERSHIP,
            Action.UPDATE,
            facts=facts,
            fields=MEMBERSHIP_MANAGE_FIELDS,
        )
        membership.status = MembershipStatus.INVITED.value
        membership.role = role.value
        membership.invited_at = utcnow()
        membership.revoked_at = None
    else:
        return membership
    db.commit()
    db.refresh(membership)

    logger.info("User %s invited to business %s by %s", user_id, business_id, principal.user_id)
    return membership


def grant_membership(
    db: Session,
    business_id: UUID,
    user_id: UUID,
    role: MembershipRole,
) -> BusinessMembership:
    """
    Create or reactivate an active membership. Caller commits.

    Used when an approved claim hands a business to its requester; the
    claim decision is the authorization for it.
    """
    now = utcnow()
    membership = get_membership(db, business_id, user_id)
    if membership is None:
        membership = BusinessMembership(
            business_id=business_id,
            user_id=user_id,
            invited_at=now,
        )
        db.add(membership)
    membership.role = role.value
    membership.status = MembershipStatus.ACTIVE.value
    membership.accepted_at = now
    membership.revoked_at = None
    db.flush()
    return membership


def accept_membership(db: Session, principal: Principal, business_id: UUID) -> BusinessMembership:
    """
    Move the principal's own invitation to active.

    Raises:
        ResourceNotFound: no membership row visible to the principal
        InvalidTransition: the invitation was revoked
    """
    if principal.user_id is None:
        raise ResourceNotFound("Membership not found")
    membership = _get_visible_membership(db, principal, business_id, principal.user_id)
    if membership.status == MembershipStatus.REVOKED.value:
        raise InvalidTransition("No pending invitation for this business")
    if membership.status == MembershipStatus.ACTIVE.value:
        return membership

    check_access(
        principal,
        ResourceType.BUSINESS_MEMBERSHIP,
        Action.UPDATE,
        resource=membership,
        fields=MEMBERSHIP_ACCEPT_FIELDS,
    )
    membership.status = MembershipStatus.ACTIVE.value
    membership.accepted_at = utcnow()
    db.commit()
    db.refresh(membership)

    logger.info("User %s joined business %s", principal.user_id, business_id)
    return membership


def revoke_membership(db: Session, principal: Principal, business_id: UUID, user_id: UUID) -> bool:
    """
    Revoke a membership. Visibility ends on the next principal resolution.

    Returns True if a membership was revoked, False if none was live.

    Raises:
        ResourceNotFound: membership is not visible to the principal
        AuthorizationError: principal is not an admin or owner of the business
    """
    membership = _get_visible_membership(db, principal, business_id, user_id)
    if membership.status == MembershipStatus.REVOKED.value:
        return False

    check_access(
        principal,
        ResourceType.BUSINESS_MEMBERSHIP,
        Action.UPDATE,
        facts=ownership_service.facts_for(db, ResourceType.BUSINESS_MEMBERSHIP, membership),
        fields={"status", "revoked_at"},
    )
    membership.status = MembershipStatus.REVOKED.value
    membership.revoked_at = utcnow()
    db.commit()

    logger.info("Revoked user %s from business %s by %s", user_id, business_id, principal.user_id)
    return True
