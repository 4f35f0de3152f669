"""FastAPI dependencies for identity, principal resolution and database access."""

import logging
from typing import Generator

import jwt
from fastapi import Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from marketplace_policy.core.security import decode_session_token
from marketplace_policy.db.session import SessionLocal
from marketplace_policy.schemas.auth import Identity, Principal, TokenPayload
from marketplace_policy.services import principal_service

logger = logging.getLogger(__name__)

# Cookie name
COOKIE_NAME = "mp_session"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _read_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def get_identity(request: Request) -> Identity | None:
    """
    Identity from the session cookie or bearer token.

    Missing, expired or forged tokens yield None (anonymous).
    """
    token = _read_token(request)
    if not token:
        return None
    try:
        payload = TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValidationError):
        logger.info("Rejected session token on %s", request.url.path)
        return None
    return Identity(
        user_id=payload.sub,
        email_verified=payload.email_verified,
        token_version=payload.token_version,
    )


def get_principal(
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the request's principal (anonymous when unauthenticated)."""
    return principal_service.resolve_principal(db, identity)
