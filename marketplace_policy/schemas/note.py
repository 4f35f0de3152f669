"""Pydantic schemas for advisor notes."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class NoteCreate(BaseModel):
    """Request to add a note."""

    body: str = Field(..., min_length=1, max_length=4000)


class NoteUpdate(BaseModel):
    body: str = Field(..., min_length=1, max_length=4000)


class NoteRead(BaseModel):
    """Note response."""

    id: UUID
    client_record_id: UUID
    author_user_id: UUID
    body: str
    current_revision: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteRevisionRead(BaseModel):
    id: UUID
    note_id: UUID
    revision: int
    body: str
    author_user_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}
