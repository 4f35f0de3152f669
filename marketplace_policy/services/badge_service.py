"""Badge gate - disclosure-conditioned transitions for listing badges.

Gated fields and the disclosure kind each one needs to be elevated:

    is_featured         false -> true        active promotion disclosure
    verification_level  none  -> any level   active verification disclosure
                        level -> other level active verification disclosure

Lowering (featured -> false, level -> none) never needs a disclosure.
Deactivating a disclosure does not revert a badge; it only blocks the
next elevation. The two gates are independent of each other.

Listing and disclosure rows are read FOR UPDATE so the disclosure check
and the badge write happen under the same row locks.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import check_access
from marketplace_policy.core.exceptions import BadgeGateViolation, ResourceNotFound
from marketplace_policy.core.policies import DISCLOSURE_APPROVAL_FIELDS
from marketplace_policy.core.structured_logging import build_log_context
from marketplace_policy.db.enums import (
    BADGE_DISCLOSURE_KIND,
    Action,
    AuditAction,
    BadgeField,
    DisclosureKind,
    ResourceType,
    VerificationLevel,
)
from marketplace_policy.db.models import Listing, TrustDisclosure, utcnow
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import ownership_service
from marketplace_policy.services.audit_service import MutationOutcome, audited

logger = logging.getLogger(__name__)


BADGE_AUDIT_ACTION: dict[BadgeField, AuditAction] = {
    BadgeField.FEATURED: AuditAction.LISTING_PROMOTION_STATE_CHANGED,
    BadgeField.VERIFICATION_LEVEL: AuditAction.LISTING_VERIFICATION_LEVEL_CHANGED,
}


# =============================================================================
# Disclosure lookups
# =============================================================================

def get_active_disclosure(
    db: Session,
    listing_id: UUID,
    kind: DisclosureKind,
    lock: bool = False,
) -> TrustDisclosure | None:
    """Currently active disclosure of `kind` for a listing, if any."""
    query = db.query(TrustDisclosure).filter(
        TrustDisclosure.listing_id == listing_id,
        TrustDisclosure.disclosure_kind == kind.value,
        TrustDisclosure.is_active.is_(True),
    )
    if lock:
        query = query.with_for_update()
    return query.first()


def _lock_listing(db: Session, listing_id: UUID) -> Listing:
    listing = (
        db.query(Listing)
        .filter(Listing.id == listing_id)
        .with_for_update()
        .first()
    )
    if listing is None:
        raise ResourceNotFound("Listing not found")
    return listing


def _lock_disclosure(db: Session, disclosure_id: UUID) -> TrustDisclosure:
    disclosure = (
        db.query(TrustDisclosure)
        .filter(TrustDisclosure.id == disclosure_id)
        .with_for_update()
        .first()
    )
    if disclosure is None:
        raise ResourceNotFound("Disclosure not found")
    return disclosure


# =============================================================================
# Badge transitions
# =============================================================================

def normalize_badge_value(field: BadgeField, value: Any) -> bool | str:
    """
    Coerce a requested badge value into its stored form.

    Raises:
        ValueError: value is not valid for the field
    """
    if field is BadgeField.FEATURED:
        if not isinstance(value, bool):
            raise ValueError("is_featured must be a boolean")
        return value
    try:
        return VerificationLevel(value).value
    except ValueError:
        raise ValueError(f"Unknown verification level '{value}'")


def is_elevation(field: BadgeField, new_value: bool | str) -> bool:
    """True when moving to `new_value` needs an active disclosure."""
    if field is BadgeField.FEATURED:
        return new_value is True
    return new_value != VerificationLevel.NONE.value


def _require_disclosure(
    db: Session,
    principal: Principal,
    listing: Listing,
    field: BadgeField,
    new_value: bool | str,
) -> TrustDisclosure | None:
    """Active disclosure backing an elevation; None when the change lowers."""
    if not is_elevation(field, new_value):
        return None
    kind = BADGE_DISCLOSURE_KIND[field]
    disclosure = get_active_disclosure(db, listing.id, kind, lock=True)
    if disclosure is None:
        logger.warning(
            "Badge gate rejected %s=%r on listing %s: no active %s disclosure",
            field.value,
            new_value,
            listing.id,
            kind.value,
            extra=build_log_context(
                user_id=str(principal.user_id) if principal.user_id else None,
                business_id=str(listing.business_id),
            ),
        )
        raise BadgeGateViolation(
            f"Setting {field.value} requires an active {kind.value} disclosure"
        )
    return disclosure


def stage_badge_changes(
    db: Session,
    principal: Principal,
    listing_id: UUID,
    changes: dict[BadgeField, bool | str],
) -> tuple[Listing, list[MutationOutcome[Listing]]]:
    """
    Gate and apply several badge changes without committing.

    Every field is authorized and gated before any of them is written,
    so a rejection leaves the listing untouched. The caller writes one
    audit event per returned outcome and commits.
    """
    listing = _lock_listing(db, listing_id)
    check_access(
        principal,
        ResourceType.LISTING,
        Action.UPDATE,
        resource=listing,
        fields={field.value for field in changes},
    )

    pending = []
    for field, new_value in changes.items():
        before = getattr(listing, field.value)
        if before == new_value:
            continue
        disclosure = _require_disclosure(db, principal, listing, field, new_value)
        pending.append((field, before, new_value, disclosure))

    outcomes = []
    for field, before, new_value, disclosure in pending:
        setattr(listing, field.value, new_value)
        outcomes.append(
            MutationOutcome(
                listing,
                action=BADGE_AUDIT_ACTION[field],
                metadata={
                    "field": field.value,
                    "before": before,
                    "after": new_value,
                    "business_id": listing.business_id,
                    "disclosure_id": disclosure.id if disclosure else None,
                },
            )
        )
    db.flush()
    return listing, outcomes


@audited(
    AuditAction.LISTING_PROMOTION_STATE_CHANGED,
    AuditAction.LISTING_VERIFICATION_LEVEL_CHANGED,
    entity_type=ResourceType.LISTING.value,
)
def _apply_badge_transition(
    db: Session,
    principal: Principal,
    listing_id: UUID,
    field: BadgeField,
    new_value: bool | str,
) -> MutationOutcome[Listing]:
    listing, outcomes = stage_badge_changes(db, principal, listing_id, {field: new_value})
    if not outcomes:
        return MutationOutcome(listing, changed=False)
    return outcomes[0]


def apply_badge_transition(
    db: Session,
    listing_id: UUID,
    field: BadgeField | str,
    new_value: Any,
    principal: Principal,
) -> Listing:
    """
    Set a gated listing field.

    Writes the listing change and its audit event in one transaction.
    Writing the stored value again is a no-op and emits nothing.

    Raises:
        ValueError: unknown field or value
        ResourceNotFound: listing does not exist
        AuthorizationError: principal may not write the field
        BadgeGateViolation: elevation without an active matching disclosure
        AuditWriteFailure: audit row could not be written (change rolled back)
    """
    field = BadgeField(field)
    value = normalize_badge_value(field, new_value)
    return _apply_badge_transition(db, principal, listing_id, field, value)


# =============================================================================
# Disclosure activation
# =============================================================================

def activate_disclosure(db: Session, disclosure_id: UUID, principal: Principal) -> TrustDisclosure:
    """
    Approve and activate a disclosure (admin only).

    Any other active disclosure of the same (listing, kind) is deactivated
    in the same transaction. Activating an already active disclosure is a
    no-op.
    """
    disclosure = _lock_disclosure(db, disclosure_id)
    check_access(
        principal,
        ResourceType.TRUST_DISCLOSURE,
        Action.UPDATE,
        facts=ownership_service.facts_for_disclosure(db, disclosure),
        fields=DISCLOSURE_APPROVAL_FIELDS,
    )
    if disclosure.is_active:
        return disclosure

    now = utcnow()
    try:
        previous = (
            db.query(TrustDisclosure)
            .filter(
                TrustDisclosure.listing_id == disclosure.listing_id,
                TrustDisclosure.disclosure_kind == disclosure.disclosure_kind,
                TrustDisclosure.is_active.is_(True),
                TrustDisclosure.id != disclosure.id,
            )
            .with_for_update()
            .all()
        )
        for other in previous:
            other.is_active = False
            other.deactivated_at = now
        # Release the partial unique index before the new row takes it
        db.flush()

        disclosure.is_active = True
        disclosure.approved_by_admin_id = principal.user_id
        disclosure.approved_at = now
        disclosure.deactivated_at = None
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(disclosure)

    logger.info(
        "Activated %s disclosure %s for listing %s (replaced %d)",
        disclosure.disclosure_kind,
        disclosure.id,
        disclosure.listing_id,
        len(previous),
    )
    return disclosure


def deactivate_disclosure(db: Session, disclosure_id: UUID, principal: Principal) -> TrustDisclosure:
    """
    Deactivate a disclosure (admin only).

    Badges already granted under it stay as they are.
    """
    disclosure = _lock_disclosure(db, disclosure_id)
    check_access(
        principal,
        ResourceType.TRUST_DISCLOSURE,
        Action.UPDATE,
        facts=ownership_service.facts_for_disclosure(db, disclosure),
        fields={"is_active", "deactivated_at"},
    )
    if not disclosure.is_active:
        return disclosure

    disclosure.is_active = False
    disclosure.deactivated_at = utcnow()
    db.commit()
    db.refresh(disclosure)

    logger.info(
        "Deactivated %s disclosure %s for listing %s",
        disclosure.disclosure_kind,
        disclosure.id,
        disclosure.listing_id,
    )
    return disclosure
