"""Advisor note service - internal notes on client records.

Notes are never visible to the consumer they describe. Editing a note
appends a revision; revisions are never rewritten or removed.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from marketplace_policy.core.access import can_read, check_access
from marketplace_policy.core.exceptions import ResourceNotFound
from marketplace_policy.core.policies import NOTE_FIELDS
from marketplace_policy.db.enums import Action, ResourceType
from marketplace_policy.db.models import AdvisorNote, AdvisorNoteRevision, ClientRecord
from marketplace_policy.schemas.auth import Principal
from marketplace_policy.services import ownership_service


def _get_client_record(db: Session, principal: Principal, client_record_id: UUID) -> ClientRecord:
    record = db.get(ClientRecord, client_record_id)
    if record is None:
        raise ResourceNotFound("Client record not found")
    facts = ownership_service.facts_for_client_record(record)
    if not can_read(principal, ResourceType.ADVISOR_NOTE, facts=facts):
        raise ResourceNotFound("Client record not found")
    return record


def get_note(db: Session, principal: Principal, note_id: UUID) -> AdvisorNote:
    note = db.get(AdvisorNote, note_id)
    if note is None or not can_read(
        principal, ResourceType.ADVISOR_NOTE, facts=ownership_service.facts_for_note(db, note)
    ):
        raise ResourceNotFound("Note not found")
    return note


def list_notes(db: Session, principal: Principal, client_record_id: UUID) -> list[AdvisorNote]:
    """Notes on a client record, newest first."""
    record = _get_client_record(db, principal, client_record_id)
    return (
        db.query(AdvisorNote)
        .filter(AdvisorNote.client_record_id == record.id)
        .order_by(AdvisorNote.created_at.desc())
        .all()
    )


def create_note(db: Session, principal: Principal, client_record_id: UUID, body: str) -> AdvisorNote:
    """Create a note and its first revision."""
    record = _get_client_record(db, principal, client_record_id)
    facts = ownership_service.facts_for_client_record(record)
    check_access(principal, ResourceType.ADVISOR_NOTE, Action.CREATE, facts=facts)

    note = AdvisorNote(
        client_record_id=record.id,
        author_user_id=principal.user_id,
        body=body,
        current_revision=1,
    )
    note.revisions.append(
        AdvisorNoteRevision(revision=1, body=body, author_user_id=principal.user_id)
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def update_note(db: Session, principal: Principal, note_id: UUID, body: str) -> AdvisorNote:
    """Replace a note's body by appending a new revision."""
    note = get_note(db, principal, note_id)
    facts = ownership_service.facts_for_note(db, note)
    check_access(principal, ResourceType.ADVISOR_NOTE, Action.UPDATE, facts=facts, fields=NOTE_FIELDS)
    check_access(principal, ResourceType.ADVISOR_NOTE_REVISION, Action.CREATE, facts=facts)

    if note.body == body:
        return note

    revision = note.current_revision + 1
    note.revisions.append(
        AdvisorNoteRevision(revision=revision, body=body, author_user_id=principal.user_id)
    )
    note.body = body
    note.current_revision = revision
    db.commit()
    db.refresh(note)
    return note


def list_revisions(db: Session, principal: Principal, note_id: UUID) -> list[AdvisorNoteRevision]:
    """Revision history of a note, oldest first."""
    note = get_note(db, principal, note_id)
    return (
        db.query(AdvisorNoteRevision)
        .filter(AdvisorNoteRevision.note_id == note.id)
        .order_by(AdvisorNoteRevision.revision.asc())
        .all()
    )
