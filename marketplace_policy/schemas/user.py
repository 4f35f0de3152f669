"""Pydantic schemas for users."""

from uuid import UUID

from pydantic import BaseModel


class RoleChange(BaseModel):
    role: str


class UserRead(BaseModel):
    id: UUID
    email: str
    display_name: str
    role: str
    is_active: bool

    model_config = {"from_attributes": True}
