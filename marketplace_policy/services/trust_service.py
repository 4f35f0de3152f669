"""Trust service - disclosure copy and consent records.

Activation and deactivation of disclosures live in badge_service, next
to the gate they feed.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access, filter_readable
from marketplace_policy.core.exceptions import PermissionDenied, ResourceNotFound
from marketplace_policy.core.policies import DISCLOSURE_COPY_FIELDS, OwnershipFacts
from marketplace_policy.db.enums import (
    Action,
    AuditAction,
    ConsentType,
    DisclosureKind,
    ResourceType,
)
from marketplace_policy.db.models import TrustConsent, TrustDisclosure
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import listing_service, ownership_service
from marketplace_policy.services.audit_service import MutationOutcome, audited

logger = logging.getLogger(__name__)


# =============================================================================
# Disclosures
# =============================================================================

def get_disclosure(db: Session, principal: Principal, disclosure_id: UUID) -> TrustDisclosure:
    """Active disclosures are public; drafts only to the business and admins."""
    disclosure = db.get(TrustDisclosure, disclosure_id)
    if disclosure is None or not can_read(
        principal,
        ResourceType.TRUST_DISCLOSURE,
        facts=ownership_service.facts_for_disclosure(db, disclosure),
    ):
        raise ResourceNotFound("Disclosure not found")
    return disclosure


def list_disclosures(db: Session, principal: Principal, listing_id: UUID) -> list[TrustDisclosure]:
    """Disclosures of a listing the principal can see, in display order."""
    listing = listing_service.get_listing(db, principal, listing_id)
    disclosures = (
        db.query(TrustDisclosure)
        .filter(TrustDisclosure.listing_id == listing.id)
        .order_by(TrustDisclosure.display_order.asc(), TrustDisclosure.created_at.asc())
        .all()
    )
    return filter_readable(
        principal,
        ResourceType.TRUST_DISCLOSURE,
        disclosures,
        facts_by_id=ownership_service.facts_by_id(db, ResourceType.TRUST_DISCLOSURE, disclosures),
    )


def create_disclosure(
    db: Session,
    principal: Principal,
    listing_id: UUID,
    kind: DisclosureKind | str,
    headline: str,
    disclosure_text: str,
    display_order: int = 0,
) -> TrustDisclosure:
    """Draft a disclosure for a listing. It stays inactive until an admin activates it."""
    listing = listing_service.get_listing(db, principal, listing_id, full=True)
    check_access(
        principal,
        ResourceType.TRUST_DISCLOSURE,
        Action.CREATE,
        facts=OwnershipFacts(business_id=listing.business_id),
    )

    disclosure = TrustDisclosure(
        listing_id=listing.id,
        disclosure_kind=DisclosureKind(kind).value,
        headline=headline,
        disclosure_text=disclosure_text,
        display_order=display_order,
        is_active=False,
        created_by_user_id=principal.user_id,
    )
    db.add(disclosure)
    db.commit()
    db.refresh(disclosure)
    return disclosure


def update_disclosure_copy(
    db: Session,
    principal: Principal,
    disclosure_id: UUID,
    changes: dict[str, Any],
) -> TrustDisclosure:
    """Edit the copy of an inactive disclosure (business members)."""
    disclosure = get_disclosure(db, principal, disclosure_id)
    unknown = set(changes) - DISCLOSURE_COPY_FIELDS
    if unknown:
        raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
    check_access(
        principal,
        ResourceType.TRUST_DISCLOSURE,
        Action.UPDATE,
        facts=ownership_service.facts_for_disclosure(db, disclosure),
        fields=set(changes),
    )
    for name, value in changes.items():
        setattr(disclosure, name, value)
    db.commit()
    db.refresh(disclosure)
    return disclosure


# =============================================================================
# Consents
# =============================================================================

@audited(AuditAction.CONSENT_RECORDED, entity_type=ResourceType.TRUST_CONSENT.value)
def record_consent(
    db: Session,
    principal: Principal,
    listing_id: UUID,
    granted: bool,
    consent_type: ConsentType | str = ConsentType.DISCLOSURE_ACKNOWLEDGED,
    disclosure_id: UUID | None = None,
    consent_data: dict[str, Any] | None = None,
    consent_id: UUID | None = None,
) -> MutationOutcome[TrustConsent]:
    """
    Record a user's own consent against a listing (and optionally one of
    its disclosures).

    Consents are self-attested and append-only. A retry carrying the same
    `consent_id` returns the stored row without a second audit event.
    """
    listing = listing_service.get_listing(db, principal, listing_id)
    check_access(
        principal,
        ResourceType.TRUST_CONSENT,
        Action.CREATE,
        facts=OwnershipFacts(owner_user_id=principal.user_id),
    )

    if consent_id is not None:
        existing = db.get(TrustConsent, consent_id)
        if existing is not None:
            if existing.user_id != principal.user_id:
                raise PermissionDenied()
            return MutationOutcome(existing, changed=False)

    if disclosure_id is not None:
        disclosure = get_disclosure(db, principal, disclosure_id)
        if disclosure.listing_id != listing.id:
            raise ResourceNotFound("Disclosure not found")

    consent = TrustConsent(
        user_id=principal.user_id,
        listing_id=listing.id,
        disclosure_id=disclosure_id,
        consent_type=ConsentType(consent_type).value,
        granted=granted,
        consent_data=consent_data,
    )
    if consent_id is not None:
        consent.id = consent_id
    db.add(consent)
    db.flush()

    # consent_data stays out of the ledger
    return MutationOutcome(
        consent,
        metadata={
            "listing_id": listing.id,
            "disclosure_id": disclosure_id,
            "consent_type": consent.consent_type,
            "granted": granted,
        },
    )


def list_consents(db: Session, principal: Principal, user_id: UUID | None = None) -> list[TrustConsent]:
    """A user's consents (their own, or anyone's for admins)."""
    owner_id = user_id or principal.user_id
    if owner_id is None:
        return []
    consents = (
        db.query(TrustConsent)
        .filter(TrustConsent.user_id == owner_id)
        .order_by(TrustConsent.created_at.desc())
        .all()
    )
    return filter_readable(principal, ResourceType.TRUST_CONSENT, consents)
