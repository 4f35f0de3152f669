"""Identity and principal schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from marketplace_policy.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded session JWT issued by the identity provider."""
    sub: UUID  # user_id
    email_verified: bool = False
    token_version: int = 1


class Identity(BaseModel):
    """Authenticated identity handed to the principal resolver."""
    user_id: UUID
    email_verified: bool = False
    token_version: int | None = None


class Principal(BaseModel):
    """
    Resolved permission context for a request.

    `business_ids` holds exactly the businesses where the user has an
    active membership; it is the only source of advisor-side visibility.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    user_id: UUID | None = None
    business_ids: frozenset[UUID] = frozenset()

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(role=Role.ANONYMOUS)

    @property
    def is_authenticated(self) -> bool:
        return self.role is not Role.ANONYMOUS and self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN and self.user_id is not None

    def is_member_of(self, business_id: UUID | None) -> bool:
        return business_id is not None and business_id in self.business_ids


class AccessCheckRequest(BaseModel):
    """Request body for POST /access/check."""
    resource_type: str
    action: str
    resource_id: UUID | None = None
    fields: list[str] = []


class AccessCheckResponse(BaseModel):
    allowed: bool
    reason: str | None = None
