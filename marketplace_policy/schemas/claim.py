"""Pydantic schemas for claim requests."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from marketplace_policy.db.enums import ClaimStatus


class ClaimCreate(BaseModel):
    business_id: UUID
    evidence: str | None = Field(default=None, max_length=4000)


class ClaimDecision(BaseModel):
    approve: bool


class ClaimRead(BaseModel):
    id: UUID
    business_id: UUID
    requester_user_id: UUID
    status: ClaimStatus
    evidence: str | None = None
    decided_by_user_id: UUID | None = None
    decided_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

