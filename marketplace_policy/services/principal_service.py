"""Principal resolver - identity (or none) -> Principal.

Never raises. Any failure while looking up the identity resolves to the
anonymous principal, and the policy table then denies by default
anything that needs authentication.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace_policy.db.enums import Role
from marketplace_policy.schemas.auth import Identity, Principal
from marketplace_policy.services import membership_service, user_service


logger = logging.getLogger(__name__)


def resolve_principal(db: Session, identity: Identity | None) -> Principal:
    """
    Build the request's Principal.

    - No identity -> anonymous
    - Unknown or disabled user, revoked token version, unknown stored role -> anonymous
    - business_ids = active memberships only
    """
    if identity is None:
        return Principal.anonymous()

    try:
        user = user_service.get_user_by_id(db, identity.user_id)
        if user is None or not user.is_active:
            logger.warning("Identity %s has no active user row", identity.user_id)
            return Principal.anonymous()

        if identity.token_version is not None and user.token_version != identity.token_version:
            logger.warning("Session revoked for user %s", user.id)
            return Principal.anonymous()

        role = Role.normalize(user.role)
        if role is None:
            logger.warning("User %s has unknown role %r", user.id, user.role)
            return Principal.anonymous()

        business_ids = membership_service.get_active_business_ids(db, user.id)
    except SQLAlchemyError:
        logger.warning(
            "Principal lookup failed for %s; resolving to anonymous",
            identity.user_id,
            exc_info=True,
        )
        db.rollback()
        return Principal.anonymous()

    return Principal(role=role, user_id=user.id, business_ids=business_ids)
