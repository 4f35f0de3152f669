"""Conversation service - threads between a consumer and a business."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access
from marketplace_policy.core.exceptions import ResourceNotFound
from marketplace_policy.db.enums import Action, ResourceType, Role
from marketplace_policy.db.models import Conversation, Lead, Message, utcnow
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import ownership_service

logger = logging.getLogger(__name__)


def get_conversation(db: Session, principal: Principal, conversation_id: UUID) -> Conversation:
    """Fetch a conversation the principal can read; otherwise not found."""
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None or not can_read(principal, ResourceType.CONVERSATION, conversation):
        raise ResourceNotFound("Conversation not found")
    return conversation


def create_conversation(
    db: Session,
    principal: Principal,
    business_id: UUID,
    consumer_user_id: UUID | None = None,
    lead_id: UUID | None = None,
) -> Conversation:
    """
    Open a conversation.

    Consumers open threads for themselves; business members open them
    for a named consumer. A linked lead must involve the same consumer
    and business.
    """
    if consumer_user_id is None and principal.role is Role.CONSUMER:
        consumer_user_id = principal.user_id
    if consumer_user_id is None:
        raise ValueError("consumer_user_id is required")

    lead = None
    if lead_id is not None:
        lead = db.get(Lead, lead_id)
        if lead is None:
            raise ResourceNotFound("Lead not found")

    facts = ownership_service.facts_for_new_conversation(business_id, consumer_user_id, lead)
    check_access(principal, ResourceType.CONVERSATION, Action.CREATE, facts=facts)

    conversation = Conversation(
        consumer_user_id=consumer_user_id,
        business_id=business_id,
        lead_id=lead_id,
    )
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


def _find_by_idempotency_key(db: Session, conversation_id: UUID, key: str) -> Message | None:
    return (
        db.query(Message)
        .filter(
            Message.conversation_id == conversation_id,
            Message.idempotency_key == key,
        )
        .first()
    )


def append_message(
    db: Session,
    principal: Principal,
    conversation_id: UUID,
    body: str,
    idempotency_key: str | None = None,
) -> Message:
    """
    Append a message to a conversation.

    A repeated idempotency key returns the message first stored under it.
    """
    conversation = get_conversation(db, principal, conversation_id)
    facts = ownership_service.facts_for_conversation(conversation)
    check_access(principal, ResourceType.MESSAGE, Action.CREATE, facts=facts)

    if idempotency_key:
        existing = _find_by_idempotency_key(db, conversation.id, idempotency_key)
        if existing is not None:
            return existing

    message = Message(
        conversation_id=conversation.id,
        sender_user_id=principal.user_id,
        body=body,
        idempotency_key=idempotency_key,
    )
    db.add(message)
    conversation.last_message_at = utcnow()
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if idempotency_key:
            existing = _find_by_idempotency_key(db, conversation_id, idempotency_key)
            if existing is not None:
                return existing
        raise
    db.refresh(message)
    return message


def list_messages(db: Session, principal: Principal, conversation_id: UUID) -> list[Message]:
    """Messages in a readable conversation, oldest first."""
    conversation = get_conversation(db, principal, conversation_id)
    facts = ownership_service.facts_for_conversation(conversation)
    if not can_read(principal, ResourceType.MESSAGE, facts=facts):
        raise ResourceNotFound("Conversation not found")
    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation.id)
        .order_by(Message.created_at.asc())
        .all()
    )
