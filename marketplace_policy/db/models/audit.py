"""Append-only audit ledger."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Index, String, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from marketplace_policy.db.base import Base
from marketplace_policy.db.models.auth import utcnow


class AuditEvent(Base):
    """
    Immutable record of a sensitive mutation.

    Written in the same transaction as the mutation it describes.
    Rows are never updated or deleted; the mapper guards below reject
    both at flush time.

    Security:
    - Metadata carries ids and before/after badge values only
    - Never stores message bodies, consent payloads or contact details
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action_occurred", "action", "occurred_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    action: Mapped[str] = mapped_column(String(80), nullable=False)  # AuditAction
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,  # System events have no actor
    )
    occurred_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)


class AuditLedgerImmutableError(RuntimeError):
    """Raised when code attempts to rewrite the audit ledger."""


@event.listens_for(AuditEvent, "before_update")
def _reject_audit_update(mapper, connection, target) -> None:
    raise AuditLedgerImmutableError(f"AuditEvent {target.id} is write-once")


@event.listens_for(AuditEvent, "before_delete")
def _reject_audit_delete(mapper, connection, target) -> None:
    raise AuditLedgerImmutableError(f"AuditEvent {target.id} cannot be deleted")
