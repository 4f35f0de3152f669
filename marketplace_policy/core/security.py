"""Session token helpers (JWT issued by the identity provider)."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from marketplace_policy.core.config import settings


def create_session_token(
    user_id: UUID,
    token_version: int = 1,
    email_verified: bool = False,
) -> str:
    """
    Create signed session JWT.

    The identity provider normally issues these; tests and local tooling
    mint them here with the same claims.
    """
    payload = {
        "sub": str(user_id),
        "email_verified": email_verified,
        "token_version": token_version,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore
