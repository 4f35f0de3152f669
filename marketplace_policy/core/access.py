"""Enforcement point - the single authorization chokepoint.

authorize() is pure: it reads the principal, a resource snapshot and
ownership facts, and returns an AccessDecision. It holds no state and is
safe to call concurrently from independent requests.

Evaluation order:
1. Unknown resource/action -> deny
2. Role-change guard on users (self-change or non-admin -> RoleEscalationBlocked)
3. Admin short-circuit (any read; writes limited to moderation fields)
4. Policy table clause for (resource type, action)
5. Nothing matched -> TenantIsolationViolation or PermissionDenied
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import UUID

from marketplace_policy.core.exceptions import (
    AuthorizationError,
    PermissionDenied,
    RoleEscalationBlocked,
    TenantIsolationViolation,
)
from marketplace_policy.core.policies import POLICIES, OwnershipFacts
from marketplace_policy.core.structured_logging import build_log_context
from marketplace_policy.db.enums import (
    Action,
    ReplyStatus,
    ResourceType,
    ReviewStatus,
)
from marketplace_policy.schemas.auth import Principal

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str | None = None
    denial: type[AuthorizationError] | None = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(
        cls,
        denial: type[AuthorizationError] = PermissionDenied,
        reason: str | None = None,
    ) -> "AccessDecision":
        return cls(allowed=False, reason=reason or denial.default_reason, denial=denial)

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise (self.denial or PermissionDenied)(self.reason)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"allowed": self.allowed}
        if self.reason:
            result["reason"] = self.reason
        return result


def _get(resource: Any, name: str) -> Any:
    """Read a field from an ORM row or a plain mapping snapshot."""
    if resource is None:
        return None
    if isinstance(resource, Mapping):
        return resource.get(name)
    return getattr(resource, name, None)


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def facts_from_resource(resource_type: ResourceType, resource: Any) -> OwnershipFacts:
    """
    Derive ownership facts readable straight off a resource snapshot.

    Facts that need joins (note -> client record, message -> conversation,
    reply -> review, disclosure -> listing) come from ownership_service.
    """
    if resource is None:
        return OwnershipFacts()

    if resource_type in (ResourceType.LEAD, ResourceType.CONVERSATION):
        return OwnershipFacts(
            business_id=_get(resource, "business_id"),
            consumer_user_id=_get(resource, "consumer_user_id"),
        )
    if resource_type is ResourceType.CLAIM_REQUEST:
        return OwnershipFacts(
            business_id=_get(resource, "business_id"),
            requester_user_id=_get(resource, "requester_user_id"),
        )
    if resource_type is ResourceType.REVIEW:
        return OwnershipFacts(
            business_id=_get(resource, "business_id"),
            consumer_user_id=_get(resource, "consumer_user_id"),
            is_published=_enum_value(_get(resource, "status")) == ReviewStatus.PUBLISHED.value,
        )
    if resource_type is ResourceType.REVIEW_DISPUTE:
        return OwnershipFacts(
            business_id=_get(resource, "business_id"),
            requester_user_id=_get(resource, "requester_user_id"),
        )
    if resource_type is ResourceType.REVIEW_REPLY:
        return OwnershipFacts(
            business_id=_get(resource, "business_id"),
            is_published=(
                _enum_value(_get(resource, "status")) == ReplyStatus.PUBLISHED.value
                and _get(resource, "deleted_at") is None
            ),
        )
    if resource_type is ResourceType.TRUST_CONSENT:
        return OwnershipFacts(owner_user_id=_get(resource, "user_id"))
    if resource_type is ResourceType.TRUST_DISCLOSURE:
        return OwnershipFacts(
            business_id=_get(resource, "business_id"),
            is_active=bool(_get(resource, "is_active")),
        )
    if resource_type is ResourceType.LISTING:
        return OwnershipFacts(
            business_id=_get(resource, "business_id"),
            is_active=bool(_get(resource, "is_active")),
        )
    if resource_type is ResourceType.USER:
        return OwnershipFacts(target_user_id=_get(resource, "id"))
    if resource_type is ResourceType.BUSINESS_MEMBERSHIP:
        return OwnershipFacts(
            business_id=_get(resource, "business_id"),
            target_user_id=_get(resource, "user_id"),
        )
    return OwnershipFacts(
        business_id=_get(resource, "business_id"),
        consumer_user_id=_get(resource, "consumer_user_id"),
    )


def _coerce(resource_type: ResourceType | str, action: Action | str) -> tuple[ResourceType, Action] | None:
    try:
        return ResourceType(resource_type), Action(action)
    except ValueError:
        return None


def _denial_for(principal: Principal, facts: OwnershipFacts) -> AccessDecision:
    """Classify a non-match: another tenant's resource, or plain fail-closed."""
    if (
        principal.business_ids
        and facts.business_id is not None
        and facts.business_id not in principal.business_ids
    ):
        return AccessDecision.deny(TenantIsolationViolation)
    return AccessDecision.deny(PermissionDenied)


def authorize(
    principal: Principal,
    resource_type: ResourceType | str,
    action: Action | str,
    resource: Any = None,
    facts: OwnershipFacts | None = None,
    fields: Iterable[str] | None = None,
) -> AccessDecision:
    """
    Decide whether `principal` may perform `action` on a resource.

    Args:
        principal: Resolved principal (anonymous allowed)
        resource_type: ResourceType or its string value
        action: create/read/update/delete
        resource: Row snapshot (ORM instance or mapping); for create, the draft
        facts: Ownership facts; derived from `resource` when omitted
        fields: Fields read (public projection) or written (update)

    Returns:
        AccessDecision - never raises for a denial
    """
    coerced = _coerce(resource_type, action)
    if coerced is None:
        return AccessDecision.deny(PermissionDenied, "Unknown resource type or action")
    rtype, act = coerced

    policy = POLICIES.get(rtype)
    if policy is None:
        return AccessDecision.deny(PermissionDenied)

    if facts is None:
        facts = facts_from_resource(rtype, resource)
    touched = frozenset(fields or ())

    # Role changes: never on one's own row, never by a non-admin
    if rtype is ResourceType.USER and act is Action.UPDATE and "role" in touched:
        if principal.user_id is not None and principal.user_id == facts.target_user_id:
            return AccessDecision.deny(
                RoleEscalationBlocked, "Users cannot change their own role"
            )
        if not principal.is_admin:
            return AccessDecision.deny(RoleEscalationBlocked)

    if principal.is_admin:
        if act is Action.READ:
            return AccessDecision.allow()
        if touched and touched <= policy.moderation_fields:
            return AccessDecision.allow()

    if policy.predicate_for(act)(principal, facts, touched):
        return AccessDecision.allow()

    return _denial_for(principal, facts)


def check_access(
    principal: Principal,
    resource_type: ResourceType | str,
    action: Action | str,
    resource: Any = None,
    facts: OwnershipFacts | None = None,
    fields: Iterable[str] | None = None,
) -> None:
    """
    Raising version of authorize() for service code.

    Raises:
        AuthorizationError subclass matching the denial
    """
    decision = authorize(principal, resource_type, action, resource, facts, fields)
    if decision.allowed:
        return
    logger.info(
        "Access denied: %s %s (%s)",
        _enum_value(action),
        _enum_value(resource_type),
        decision.denial.__name__ if decision.denial else "PermissionDenied",
        extra=build_log_context(
            user_id=str(principal.user_id) if principal.user_id else None,
        ),
    )
    decision.raise_for_denial()


def can_read(
    principal: Principal,
    resource_type: ResourceType | str,
    resource: Any = None,
    facts: OwnershipFacts | None = None,
    fields: Iterable[str] | None = None,
) -> bool:
    """Non-raising read check used to decide 404 vs 403."""
    return authorize(principal, resource_type, Action.READ, resource, facts, fields).allowed


def filter_readable(
    principal: Principal,
    resource_type: ResourceType | str,
    resources: Iterable[T],
    facts_by_id: Mapping[UUID, OwnershipFacts] | None = None,
) -> list[T]:
    """
    Drop snapshots the principal cannot read.

    Cross-tenant rows silently disappear: a list read returns fewer rows,
    never an error.
    """
    visible: list[T] = []
    for resource in resources:
        facts = None
        if facts_by_id is not None:
            facts = facts_by_id.get(_get(resource, "id"))
        if can_read(principal, resource_type, resource, facts):
            visible.append(resource)
    return visible
