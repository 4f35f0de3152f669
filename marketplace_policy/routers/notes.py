"""Notes router - internal advisor notes on client records.

Mixed paths: /client-records/{id}/notes and /notes/{id}.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace_policy.core.deps import get_db, get_principal
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.schemas.note import NoteCreate, NoteRead, NoteRevisionRead, NoteUpdate
from marketplace_policy.services import note_service

router = APIRouter()


@router.get("/client-records/{client_record_id}/notes", response_model=list[NoteRead])
def list_notes(
    client_record_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """List notes for a client record (business members only)."""
    return note_service.list_notes(db, principal, client_record_id)


@router.post(
    "/client-records/{client_record_id}/notes",
    response_model=NoteRead,
    status_code=201,
)
def create_note(
    client_record_id: UUID,
    data: NoteCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return note_service.create_note(db, principal, client_record_id, data.body)


@router.patch("/notes/{note_id}", response_model=NoteRead)
def update_note(
    note_id: UUID,
    data: NoteUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Edit a note; the previous body is kept as a revision."""
    return note_service.update_note(db, principal, note_id, data.body)


@router.get("/notes/{note_id}/revisions", response_model=list[NoteRevisionRead])
def list_revisions(
    note_id: UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return note_service.list_revisions(db, principal, note_id)
