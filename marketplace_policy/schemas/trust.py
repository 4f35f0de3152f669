"""Pydantic schemas for reviews, listings, disclosures and consents."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from marketplace_policy.db.enums import (
    BadgeField,
    ConsentType,
    DisclosureKind,
    DisputeStatus,
    ReplyStatus,
    ReviewStatus,
)


# =============================================================================
# Reviews
# =============================================================================

class ReviewCreate(BaseModel):
    lead_id: UUID
    listing_id: UUID | None = None
    rating: int = Field(..., ge=1, le=5)
    body: str | None = Field(default=None, max_length=4000)


class ReviewModeration(BaseModel):
    status: ReviewStatus


class ReviewRead(BaseModel):
    id: UUID
    lead_id: UUID
    consumer_user_id: UUID
    business_id: UUID
    listing_id: UUID
    rating: int
    body: str | None = None
    status: ReviewStatus
    published_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DisputeCreate(BaseModel):
    reason_text: str = Field(..., min_length=1, max_length=4000)


class DisputeRead(BaseModel):
    id: UUID
    review_id: UUID
    requester_user_id: UUID
    business_id: UUID
    reason_text: str
    status: DisputeStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class ReplyCreate(BaseModel):
    reply_text: str = Field(..., min_length=1, max_length=4000)


class ReplyRead(BaseModel):
    id: UUID
    review_id: UUID
    business_id: UUID
    responder_user_id: UUID
    reply_text: str
    status: ReplyStatus
    published_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Listings and badges
# =============================================================================

class ListingUpdate(BaseModel):
    """Partial listing update; unset fields are left alone."""

    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    headline: str | None = Field(default=None, max_length=500)
    suburb: str | None = Field(default=None, max_length=120)
    contact_email: str | None = Field(default=None, max_length=320)
    internal_notes: str | None = None
    is_active: bool | None = None
    is_featured: bool | None = None
    verification_level: str | None = None


class BadgeTransition(BaseModel):
    field: BadgeField
    value: bool | str


# =============================================================================
# Disclosures and consents
# =============================================================================

class DisclosureCreate(BaseModel):
    disclosure_kind: DisclosureKind
    headline: str = Field(..., min_length=1, max_length=255)
    disclosure_text: str = Field(..., min_length=1)
    display_order: int = 0


class DisclosureRead(BaseModel):
    id: UUID
    listing_id: UUID
    disclosure_kind: DisclosureKind
    headline: str
    disclosure_text: str
    display_order: int
    is_active: bool
    approved_by_admin_id: UUID | None = None
    approved_at: datetime | None = None
    deactivated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ConsentCreate(BaseModel):
    """Self-attested consent. `id` makes retries idempotent."""

    id: UUID | None = None
    listing_id: UUID
    disclosure_id: UUID | None = None
    consent_type: ConsentType = ConsentType.DISCLOSURE_ACKNOWLEDGED
    granted: bool
    consent_data: dict[str, Any] | None = None


class ConsentRead(BaseModel):
    id: UUID
    user_id: UUID
    listing_id: UUID
    disclosure_id: UUID | None = None
    consent_type: ConsentType
    granted: bool
    created_at: datetime

    model_config = {"from_attributes": True}
