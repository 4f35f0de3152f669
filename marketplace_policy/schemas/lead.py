"""Pydantic schemas for leads, conversations and messages."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from marketplace_policy.db.enums import LeadStatus


class LeadCreate(BaseModel):
    """Consumer opens a lead."""

    business_id: UUID
    listing_id: UUID | None = None
    summary: str | None = Field(default=None, max_length=4000)


class LeadStatusUpdate(BaseModel):
    """Move a lead; `version` is the version the caller last read."""

    status: LeadStatus
    version: int = Field(..., ge=1)


class LeadRead(BaseModel):
    id: UUID
    consumer_user_id: UUID
    business_id: UUID
    listing_id: UUID | None = None
    status: LeadStatus
    summary: str | None = None
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversationCreate(BaseModel):
    business_id: UUID
    consumer_user_id: UUID | None = None
    lead_id: UUID | None = None


class ConversationRead(BaseModel):
    id: UUID
    consumer_user_id: UUID
    business_id: UUID
    lead_id: UUID | None = None
    last_message_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageCreate(BaseModel):
    """Append a message. Retries reuse `idempotency_key`."""

    body: str = Field(..., min_length=1, max_length=10000)
    idempotency_key: str | None = Field(default=None, max_length=100)


class MessageRead(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_user_id: UUID
    body: str
    idempotency_key: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
