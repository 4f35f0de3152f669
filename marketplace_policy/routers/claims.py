"""Claims router - business ownership claims."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.schemas.claim import ClaimCreate, ClaimDecision, ClaimRead
from marketplace_policy.services import claim_service

router = APIRouter()


@router.get("", response_model=list[ClaimRead])
def list_claims(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return claim_service.list_claims(db, principal)


@router.post("", response_model=ClaimRead, status_code=201)
def create_claim(
    data: ClaimCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return claim_service.create_claim(db, principal, data.business_id, evidence=data.evidence)


@router.get("/{claim_id}", response_model=ClaimRead)
def get_claim(
    claim_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return claim_service.get_claim(db, principal, claim_id)


@router.post("/{claim_id}/decision", response_model=ClaimRead)
def decide_claim(
    claim_id: UUID,
    data: ClaimDecision,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Approve or reject a pending claim (admin only)."""
    return claim_service.decide_claim(db, principal, claim_id, approve=data.approve)
