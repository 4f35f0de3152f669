"""Audit service - append-only ledger for sensitive trust mutations.

Every action in AuditAction is written in the same transaction as the
mutation it describes. A failed audit write aborts that transaction:
a mutation without its audit row is worse than no mutation.

Security guidelines:
- NEVER log message bodies, consent payloads or contact details
- Use IDs and before/after badge values in metadata
"""

import functools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace_policy.core.exceptions import AuditWriteFailure
from marketplace_policy.db.enums import AuditAction
from marketplace_policy.db.models import AuditEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")


def canonical_json(obj: dict | None) -> str:
    """Serialize metadata with sorted keys and compact separators."""
    return json.dumps(obj or {}, sort_keys=True, separators=(",", ":"), default=str)


def _jsonable(metadata: dict[str, Any] | None) -> dict[str, Any]:
    """Round-trip through canonical JSON so UUIDs/enums/datetimes store cleanly."""
    return json.loads(canonical_json(metadata))


def record_auditable_mutation(
    db: Session,
    action: AuditAction | str,
    entity_type: str,
    entity_id: UUID,
    actor_user_id: UUID | None,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent:
    """
    Append an audit event inside the caller's transaction.

    Does not commit; the caller commits the mutation and its audit row
    together.

    Raises:
        ValueError: action is not in the closed vocabulary
        AuditWriteFailure: the row could not be written
    """
    if not isinstance(action, AuditAction):
        if not AuditAction.has_value(action):
            raise ValueError(f"Unknown audit action '{action}'")
        action = AuditAction(action)

    try:
        entry = AuditEvent(
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            event_metadata=_jsonable(metadata),
        )
        db.add(entry)
        db.flush()
    except (SQLAlchemyError, TypeError, ValueError) as exc:
        raise AuditWriteFailure(
            f"Failed to write audit event {action.value} for {entity_type} {entity_id}"
        ) from exc

    return entry


@dataclass
class MutationOutcome(Generic[T]):
    """
    What an audited mutation did.

    changed=False means the call was a no-op (same inputs as the stored
    state); no audit event is written for it.
    """

    entity: T
    changed: bool = True
    action: AuditAction | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def record_outcomes(
    db: Session,
    principal,
    entity_type: str,
    outcomes: list[MutationOutcome],
    allowed: tuple[AuditAction, ...],
) -> None:
    """
    Write one audit event per changed outcome. Does not commit.

    Raises:
        ValueError: an outcome names an action outside `allowed`
        AuditWriteFailure: a row could not be written
    """
    for outcome in outcomes:
        if not outcome.changed:
            continue
        action = outcome.action or allowed[0]
        if action not in allowed:
            raise ValueError(f"Audit action '{action.value}' not allowed for {entity_type}")
        record_auditable_mutation(
            db,
            action,
            entity_type,
            outcome.entity.id,
            principal.user_id,
            outcome.metadata,
        )


def audited(*actions: AuditAction, entity_type: str) -> Callable:
    """
    Wrap a service mutation so its audit event is written before commit.

    The wrapped function takes (db, principal, ...) and returns a
    MutationOutcome. The wrapper emits one AuditEvent per actual change,
    commits, and rolls back everything (mutation included) if any step
    fails.

    Usage:
        @audited(AuditAction.CONSENT_RECORDED, entity_type="trust_consent")
        def record_consent(db, principal, ...): ...
    """
    if not actions:
        raise ValueError("audited() needs at least one AuditAction")

    def decorator(func: Callable[..., MutationOutcome[T]]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(db: Session, principal, *args, **kwargs) -> T:
            try:
                outcome = func(db, principal, *args, **kwargs)
                record_outcomes(db, principal, entity_type, [outcome], actions)
                db.commit()
            except AuditWriteFailure:
                db.rollback()
                logger.exception(
                    "Audit write failed in %s; transaction rolled back", func.__name__
                )
                raise
            except Exception:
                db.rollback()
                raise
            return outcome.entity

        wrapper.audit_actions = actions  # type: ignore[attr-defined]
        return wrapper

    return decorator


def list_events_for_entity(
    db: Session,
    entity_type: str,
    entity_id: UUID,
    action: AuditAction | None = None,
) -> list[AuditEvent]:
    """Ledger rows for one entity, oldest first."""
    query = db.query(AuditEvent).filter(
        AuditEvent.entity_type == entity_type,
        AuditEvent.entity_id == entity_id,
    )
    if action is not None:
        query = query.filter(AuditEvent.action == action.value)
    return query.order_by(AuditEvent.occurred_at.asc()).all()
