"""User service - user lookups, profile edits and role changes.

User rows are created by the identity provider sync; this service never
inserts them.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access
from marketplace_policy.core.exceptions import ResourceNotFound
from marketplace_policy.db.enums import Action, ResourceType, Role
from marketplace_policy.db.models import User
from marketplace_policy.schemas.auth import Principal

logger = logging.getLogger(__name__)


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def update_profile(db: Session, principal: Principal, user_id: UUID, display_name: str) -> User:
    """Users edit their own profile fields; nothing else."""
    user = get_user_by_id(db, user_id)
    if user is None or not can_read(principal, ResourceType.USER, user):
        raise ResourceNotFound("User not found")
    check_access(principal, ResourceType.USER, Action.UPDATE, resource=user, fields={"display_name"})

    user.display_name = display_name
    db.commit()
    db.refresh(user)
    return user


def change_user_role(db: Session, principal: Principal, user_id: UUID, new_role: str) -> User:
    """
    Change another user's role (admin only).

    Self-changes are always rejected, admins included. The user's
    token_version is bumped so existing sessions resolve again.

    Raises:
        ResourceNotFound: no such user
        RoleEscalationBlocked: self-change or non-admin actor
        ValueError: role is not a storable user role
    """
    user = get_user_by_id(db, user_id)
    if user is None:
        raise ResourceNotFound("User not found")
    check_access(principal, ResourceType.USER, Action.UPDATE, resource=user, fields={"role"})

    role = Role.normalize(new_role)
    if role is None:
        raise ValueError(f"Unknown role '{new_role}'")
    if user.role == role.value:
        return user

    old_role = user.role
    user.role = role.value
    user.token_version = user.token_version + 1
    db.commit()
    db.refresh(user)

    logger.info("User %s role changed %s -> %s by %s", user.id, old_role, role.value, principal.user_id)
    return user
