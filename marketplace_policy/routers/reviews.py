"""Reviews router - reviews, moderation, disputes and replies."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.schemas.trust import (
    DisputeCreate,
    DisputeRead,
    ReplyCreate,
    ReplyRead,
    ReviewCreate,
    ReviewModeration,
    ReviewRead,
)
from marketplace_policy.services import review_service

router = APIRouter()


@router.post("", response_model=ReviewRead, status_code=201)
def create_review(
    data: ReviewCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return review_service.create_review(
        db,
        principal,
        lead_id=data.lead_id,
        rating=data.rating,
        body=data.body,
        listing_id=data.listing_id,
    )


@router.get("/{review_id}", response_model=ReviewRead)
def get_review(
    review_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return review_service.get_review(db, principal, review_id)


@router.post("/{review_id}/moderation", response_model=ReviewRead)
def moderate_review(
    review_id: UUID,
    data: ReviewModeration,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Publish, reject or remove a review (admin only)."""
    return review_service.moderate_review(db, principal, review_id, data.status)


@router.post("/{review_id}/disputes", response_model=DisputeRead, status_code=201)
def create_dispute(
    review_id: UUID,
    data: DisputeCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return review_service.create_dispute(db, principal, review_id, data.reason_text)


@router.get("/{review_id}/replies", response_model=list[ReplyRead])
def list_replies(
    review_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return review_service.list_replies(db, principal, review_id)


@router.post("/{review_id}/replies", response_model=ReplyRead, status_code=201)
def create_reply(
    review_id: UUID,
    data: ReplyCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Publish the business's reply; replaces any earlier reply."""
    return review_service.create_reply(db, principal, review_id, data.reply_text)
