"""Listings router - public profiles, badges and disclosures.

Mixed paths: /listings/{id}/... and /disclosures/{id}/...
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.schemas.trust import (
    BadgeTransition,
    DisclosureCreate,
    DisclosureRead,
    ListingUpdate,
)
from marketplace_policy.services import badge_service, listing_service, trust_service

router = APIRouter()


@router.get("/listings/{listing_id}")
def get_listing(
    listing_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Public projection for visitors; the full record for members and admins."""
    listing = listing_service.get_listing(db, principal, listing_id)
    return listing_service.project_listing(principal, listing)


@router.patch("/listings/{listing_id}")
def update_listing(
    listing_id: UUID,
    data: ListingUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    try:
        listing = listing_service.update_listing(db, principal, listing_id, changes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return listing_service.project_listing(principal, listing)


@router.post("/listings/{listing_id}/badges")
def apply_badge(
    listing_id: UUID,
    data: BadgeTransition,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Set one badge field through the badge gate."""
    listing_service.get_listing(db, principal, listing_id, full=True)
    try:
        listing = badge_service.apply_badge_transition(
            db, listing_id, data.field, data.value, principal
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return listing_service.project_listing(principal, listing)


@router.get("/listings/{listing_id}/disclosures", response_model=list[DisclosureRead])
def list_disclosures(
    listing_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return trust_service.list_disclosures(db, principal, listing_id)


@router.post(
    "/listings/{listing_id}/disclosures",
    response_model=DisclosureRead,
    status_code=201,
)
def create_disclosure(
    listing_id: UUID,
    data: DisclosureCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return trust_service.create_disclosure(
        db,
        principal,
        listing_id,
        kind=data.disclosure_kind,
        headline=data.headline,
        disclosure_text=data.disclosure_text,
        display_order=data.display_order,
    )


@router.post("/disclosures/{disclosure_id}/activate", response_model=DisclosureRead)
def activate_disclosure(
    disclosure_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Approve and activate (admin only); replaces the active one of the same kind."""
    trust_service.get_disclosure(db, principal, disclosure_id)
    return badge_service.activate_disclosure(db, disclosure_id, principal)


@router.post("/disclosures/{disclosure_id}/deactivate", response_model=DisclosureRead)
def deactivate_disclosure(
    disclosure_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    trust_service.get_disclosure(db, principal, disclosure_id)
    return badge_service.deactivate_disclosure(db, disclosure_id, principal)
