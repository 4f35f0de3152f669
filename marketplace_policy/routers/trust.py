"""Trust router - consent records."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.schemas.trust import ConsentCreate, ConsentRead
from marketplace_policy.services import trust_service

router = APIRouter()


@router.get("/consents", response_model=list[ConsentRead])
def list_consents(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return trust_service.list_consents(db, principal)


@router.post("/consents", response_model=ConsentRead, status_code=201)
def record_consent(
    data: ConsentCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Record the caller's own consent. Resending the same `id` is a no-op."""
    return trust_service.record_consent(
        db,
        principal,
        listing_id=data.listing_id,
        granted=data.granted,
        consent_type=data.consent_type,
        disclosure_id=data.disclosure_id,
        consent_data=data.consent_data,
        consent_id=data.id,
    )
