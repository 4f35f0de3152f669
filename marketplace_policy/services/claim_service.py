"""Claim service - requests to take ownership of a business profile."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access
from marketplace_policy.core.exceptions import InvalidTransition, ResourceNotFound
from marketplace_policy.core.policies import CLAIM_DECISION_FIELDS
from marketplace_policy.db.enums import Action, ClaimStatus, MembershipRole, ResourceType
from marketplace_policy.db.models import Business, ClaimRequest, utcnow
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import membership_service

logger = logging.getLogger(__name__)


def get_claim(db: Session, principal: Principal, claim_id: UUID) -> ClaimRequest:
    """Claims are visible to their requester and admins only."""
    claim = db.query(ClaimRequest).filter(ClaimRequest.id == claim_id).first()
    if claim is None or not can_read(principal, ResourceType.CLAIM_REQUEST, claim):
        raise ResourceNotFound("Claim not found")
    return claim


def list_claims(db: Session, principal: Principal) -> list[ClaimRequest]:
    """Admins see every claim; everyone else sees their own."""
    if not principal.is_authenticated:
        return []
    query = db.query(ClaimRequest)
    if not principal.is_admin:
        query = query.filter(ClaimRequest.requester_user_id == principal.user_id)
    return query.order_by(ClaimRequest.created_at.desc()).all()


def create_claim(
    db: Session,
    principal: Principal,
    business_id: UUID,
    evidence: str | None = None,
) -> ClaimRequest:
    """File a claim for a business on behalf of the calling user."""
    draft = {"business_id": business_id, "requester_user_id": principal.user_id}
    check_access(principal, ResourceType.CLAIM_REQUEST, Action.CREATE, resource=draft)

    if db.get(Business, business_id) is None:
        raise ResourceNotFound("Business not found")

    claim = ClaimRequest(
        business_id=business_id,
        requester_user_id=principal.user_id,
        evidence=evidence,
        status=ClaimStatus.PENDING.value,
    )
    db.add(claim)
    db.commit()
    db.refresh(claim)
    return claim


def decide_claim(db: Session, principal: Principal, claim_id: UUID, approve: bool) -> ClaimRequest:
    """
    Approve or reject a pending claim (admin only).

    Approval makes the requester an active owner of the business.

    Raises:
        InvalidTransition: claim was already decided
    """
    claim = get_claim(db, principal, claim_id)
    check_access(
        principal,
        ResourceType.CLAIM_REQUEST,
        Action.UPDATE,
        resource=claim,
        fields=CLAIM_DECISION_FIELDS,
    )
    if claim.status != ClaimStatus.PENDING.value:
        raise InvalidTransition(f"Claim already {claim.status}")

    claim.status = (ClaimStatus.APPROVED if approve else ClaimStatus.REJECTED).value
    claim.decided_by_user_id = principal.user_id
    claim.decided_at = utcnow()
    if approve:
        membership_service.grant_membership(
            db, claim.business_id, claim.requester_user_id, MembershipRole.OWNER
        )
    db.commit()
    db.refresh(claim)

    logger.info("Claim %s %s by %s", claim.id, claim.status, principal.user_id)
    return claim
