"""Leads router - consumer introductions and their lifecycle."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.db.enums import LeadStatus
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.schemas.lead import LeadCreate, LeadRead, LeadStatusUpdate
from marketplace_policy.services import lead_service

router = APIRouter()


@router.get("", response_model=list[LeadRead])
def list_leads(
    status: LeadStatus | None = None,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Leads the caller can see: their own, or their businesses'."""
    return lead_service.list_leads(db, principal, status=status)


@router.post("", response_model=LeadRead, status_code=201)
def create_lead(
    data: LeadCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return lead_service.create_lead(
        db,
        principal,
        business_id=data.business_id,
        listing_id=data.listing_id,
        summary=data.summary,
    )


@router.get("/{lead_id}", response_model=LeadRead)
def get_lead(
    lead_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return lead_service.get_lead(db, principal, lead_id)


@router.patch("/{lead_id}/status", response_model=LeadRead)
def update_lead_status(
    lead_id: UUID,
    data: LeadStatusUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Move a lead along its lifecycle (optimistic lock on `version`)."""
    return lead_service.update_lead_status(
        db, principal, lead_id, data.status, expected_version=data.version
    )
