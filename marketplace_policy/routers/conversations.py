"""Conversations router - threads and messages."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.schemas.lead import (
    ConversationCreate,
    ConversationRead,
    MessageCreate,
    MessageRead,
)
from marketplace_policy.services import conversation_service

router = APIRouter()


@router.post("", response_model=ConversationRead, status_code=201)
def create_conversation(
    data: ConversationCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    try:
        return conversation_service.create_conversation(
            db,
            principal,
            business_id=data.business_id,
            consumer_user_id=data.consumer_user_id,
            lead_id=data.lead_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{conversation_id}", response_model=ConversationRead)
def get_conversation(
    conversation_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return conversation_service.get_conversation(db, principal, conversation_id)


@router.get("/{conversation_id}/messages", response_model=list[MessageRead])
def list_messages(
    conversation_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return conversation_service.list_messages(db, principal, conversation_id)


@router.post("/{conversation_id}/messages", response_model=MessageRead, status_code=201)
def append_message(
    conversation_id: UUID,
    data: MessageCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Send a message. Retrying with the same idempotency key is safe."""
    return conversation_service.append_message(
        db,
        principal,
        conversation_id,
        body=data.body,
        idempotency_key=data.idempotency_key,
    )
