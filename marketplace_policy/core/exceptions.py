"""Policy engine error taxonomy.

Authorization errors are recovered at the HTTP boundary and rendered as
404/403/409. AuditWriteFailure is fatal: the enclosing transaction is
rolled back and the error propagates.
"""


class PolicyEngineError(Exception):
    """Base exception for policy engine errors."""

    pass


class AuthorizationError(PolicyEngineError):
    """Base for every denial produced by the enforcement point."""

    default_reason = "Forbidden"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class PermissionDenied(AuthorizationError):
    """No policy clause matched (fail closed)."""

    default_reason = "No policy clause grants this access"


class TenantIsolationViolation(AuthorizationError):
    """Attempted access to another business's resource."""

    default_reason = "Resource belongs to another business"


class RoleEscalationBlocked(AuthorizationError):
    """Attempted change of one's own role, or a role change by a non-admin."""

    default_reason = "Role changes require an admin acting on another user"


class BadgeGateViolation(AuthorizationError):
    """Badge elevation attempted without an active qualifying disclosure."""

    default_reason = "No active disclosure justifies this badge"


class AuditWriteFailure(PolicyEngineError):
    """The mandated audit event could not be written. Aborts the transaction."""

    pass


class ResourceNotFound(PolicyEngineError):
    """Resource does not exist (or must be reported as not existing)."""

    pass


class InvalidTransition(PolicyEngineError):
    """State transition not allowed by the resource's lifecycle."""

    pass


class LeadVersionConflict(PolicyEngineError):
    """Lead was modified concurrently (optimistic lock mismatch)."""

    pass
