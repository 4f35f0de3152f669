"""Listing service - public profiles and their edits.

Ordinary profile fields are written directly. Badge fields
(`is_featured`, `verification_level`) always go through the badge gate.

A listing read that names no fields asks for the public projection;
the full record is read by naming LISTING_FIELDS.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access
from marketplace_policy.core.exceptions import AuditWriteFailure, ResourceNotFound
from marketplace_policy.core.policies import BADGE_FIELDS, LISTING_PROFILE_FIELDS
from marketplace_policy.db.enums import Action, BadgeField, ResourceType
from marketplace_policy.db.models import PUBLIC_LISTING_FIELDS, Listing
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import badge_service
from marketplace_policy.services.audit_service import record_outcomes

logger = logging.getLogger(__name__)

LISTING_FIELDS = PUBLIC_LISTING_FIELDS | LISTING_PROFILE_FIELDS | frozenset(
    {"business_id", "is_active"}
)
BADGE_AUDIT_ACTIONS = tuple(badge_service.BADGE_AUDIT_ACTION.values())


def get_listing(db: Session, principal: Principal, listing_id: UUID, full: bool = False) -> Listing:
    """
    Fetch a listing the principal can see.

    full=False accepts the public projection of an active listing;
    full=True requires the whole record (business members and admins).
    """
    listing = db.get(Listing, listing_id)
    if listing is None:
        raise ResourceNotFound("Listing not found")
    if can_read(principal, ResourceType.LISTING, listing, fields=LISTING_FIELDS):
        return listing
    if not full and can_read(principal, ResourceType.LISTING, listing, fields=PUBLIC_LISTING_FIELDS):
        return listing
    raise ResourceNotFound("Listing not found")


def project_listing(principal: Principal, listing: Listing) -> dict[str, Any]:
    """Serialize the listing with only the fields the principal may read."""
    if can_read(principal, ResourceType.LISTING, listing, fields=LISTING_FIELDS):
        names = LISTING_FIELDS
    else:
        names = PUBLIC_LISTING_FIELDS
    return {name: getattr(listing, name) for name in sorted(names)}


def update_listing(
    db: Session,
    principal: Principal,
    listing_id: UUID,
    changes: dict[str, Any],
) -> Listing:
    """
    Apply a partial update as one transaction.

    Profile fields (and `is_active`, admin only) are checked first; badge
    fields are then gated together, and nothing is committed unless every
    field passes. One audit event is written per badge that changed.

    Raises:
        ValueError: unknown field or badge value
        AuthorizationError: principal may not write one of the fields
        BadgeGateViolation: a badge elevation lacks its disclosure
        AuditWriteFailure: an audit row could not be written
    """
    listing = get_listing(db, principal, listing_id, full=True)

    unknown = set(changes) - (LISTING_PROFILE_FIELDS | BADGE_FIELDS | {"is_active"})
    if unknown:
        raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")

    plain = {name: value for name, value in changes.items() if name not in BADGE_FIELDS}
    gated = {
        BadgeField(name): badge_service.normalize_badge_value(BadgeField(name), value)
        for name, value in changes.items()
        if name in BADGE_FIELDS
    }
    if plain:
        check_access(principal, ResourceType.LISTING, Action.UPDATE, resource=listing, fields=set(plain))

    try:
        outcomes = []
        if gated:
            listing, outcomes = badge_service.stage_badge_changes(db, principal, listing.id, gated)
        for name, value in plain.items():
            setattr(listing, name, value)
        record_outcomes(db, principal, ResourceType.LISTING.value, outcomes, BADGE_AUDIT_ACTIONS)
        db.commit()
    except AuditWriteFailure:
        db.rollback()
        logger.exception("Audit write failed updating listing %s; transaction rolled back", listing_id)
        raise
    except Exception:
        db.rollback()
        raise
    db.refresh(listing)
    return listing
