"""Lead service - introductions from consumers to businesses.

Status changes follow the lead lifecycle and are guarded by an
optimistic lock on `Lead.version`.
"""

import logging
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access, filter_readable
from marketplace_policy.core.exceptions import (
    InvalidTransition,
    LeadVersionConflict,
    ResourceNotFound,
)
from marketplace_policy.core.policies import LEAD_STATUS_FIELDS
from marketplace_policy.db.enums import (
    VALID_LEAD_TRANSITIONS,
    Action,
    LeadStatus,
    ResourceType,
)
from marketplace_policy.db.models import Business, Lead, Listing, utcnow
from marketplace_policy.schemas.auth import Principal

logger = logging.getLogger(__name__)


def get_lead(db: Session, principal: Principal, lead_id: UUID) -> Lead:
    """
    Fetch a lead the principal can read.

    Unreadable leads are reported as missing.
    """
    lead = db.query(Lead).filter(Lead.id == lead_id).first()
    if lead is None or not can_read(principal, ResourceType.LEAD, lead):
        raise ResourceNotFound("Lead not found")
    return lead


def list_leads(db: Session, principal: Principal, status: LeadStatus | None = None) -> list[Lead]:
    """Leads visible to the principal, newest first."""
    if not principal.is_authenticated:
        return []

    query = db.query(Lead)
    if not principal.is_admin:
        clauses = [Lead.consumer_user_id == principal.user_id]
        if principal.business_ids:
            clauses.append(Lead.business_id.in_(principal.business_ids))
        query = query.filter(or_(*clauses))
    if status is not None:
        query = query.filter(Lead.status == status.value)

    leads = query.order_by(Lead.created_at.desc()).all()
    return filter_readable(principal, ResourceType.LEAD, leads)


def create_lead(
    db: Session,
    principal: Principal,
    business_id: UUID,
    listing_id: UUID | None = None,
    summary: str | None = None,
) -> Lead:
    """Consumer opens a lead against a business (optionally via one of its listings)."""
    draft = {"business_id": business_id, "consumer_user_id": principal.user_id}
    check_access(principal, ResourceType.LEAD, Action.CREATE, resource=draft)

    if db.get(Business, business_id) is None:
        raise ResourceNotFound("Business not found")
    if listing_id is not None:
        listing = db.get(Listing, listing_id)
        if listing is None or listing.business_id != business_id or not listing.is_active:
            raise ResourceNotFound("Listing not found")

    lead = Lead(
        consumer_user_id=principal.user_id,
        business_id=business_id,
        listing_id=listing_id,
        summary=summary,
        status=LeadStatus.NEW.value,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    return lead


def update_lead_status(
    db: Session,
    principal: Principal,
    lead_id: UUID,
    new_status: LeadStatus | str,
    expected_version: int,
) -> Lead:
    """
    Move a lead along its lifecycle.

    Raises:
        ResourceNotFound: lead missing or unreadable
        AuthorizationError: principal may not change the status
        InvalidTransition: move not allowed from the current status
        LeadVersionConflict: lead changed since `expected_version` was read
    """
    lead = get_lead(db, principal, lead_id)
    check_access(principal, ResourceType.LEAD, Action.UPDATE, resource=lead, fields=LEAD_STATUS_FIELDS)

    try:
        target = LeadStatus(new_status)
    except ValueError:
        raise InvalidTransition(f"Unknown lead status '{new_status}'")

    current = LeadStatus(lead.status)
    if target not in VALID_LEAD_TRANSITIONS[current]:
        raise InvalidTransition(f"Cannot move lead from {current.value} to {target.value}")

    updated = (
        db.query(Lead)
        .filter(Lead.id == lead.id, Lead.version == expected_version)
        .update(
            {
                Lead.status: target.value,
                Lead.version: Lead.version + 1,
                Lead.updated_at: utcnow(),
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.rollback()
        raise LeadVersionConflict("Lead was modified by someone else; reload and retry")

    db.commit()
    db.refresh(lead)

    logger.info("Lead %s moved %s -> %s", lead.id, current.value, target.value)
    return lead
