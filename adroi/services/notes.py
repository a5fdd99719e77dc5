from datetime import date

from sqlalchemy.orm import Session

from adroi.errors import ValidationError
from adroi.models import Client, ClientNote
from adroi.services.gateway import commit, get_scoped, scoped


def list_notes(db: Session, organization_id: int, client_id: int) -> list[ClientNote]:
    notes = (
        scoped(db, ClientNote, organization_id)
        .filter(ClientNote.client_id == client_id)
        .order_by(ClientNote.date.desc(), ClientNote.created_at.desc(), ClientNote.id.desc())
        .all()
    )
    # pinned notes float to the top, keeping date order inside each group
    return sorted(notes, key=lambda n: not n.is_pinned)


def create_note(db: Session, organization_id: int, client_id: int, *, title: str, content: str = "", day: date | None = None, is_pinned: bool = False) -> ClientNote:
    get_scoped(db, Client, organization_id, client_id)
    title = (title or "").strip()
    if not title:
        raise ValidationError("Note title is required", toast="note-title-required")
    note = ClientNote(
        organization_id=organization_id,
        client_id=client_id,
        title=title,
        content=(content or "").strip(),
        date=day or date.today(),
        is_pinned=is_pinned,
    )
    db.add(note)
    commit(db, "save note")
    db.refresh(note)
    return note


def update_note(db: Session, organization_id: int, note_id: int, *, title: str | None = None, content: str | None = None, is_pinned: bool | None = None) -> ClientNote:
    note = get_scoped(db, ClientNote, organization_id, note_id)
    if title is not None:
        if not title.strip():
            raise ValidationError("Note title is required", toast="note-title-required")
        note.title = title.strip()
    if content is not None:
        note.content = content.strip()
    if is_pinned is not None:
        note.is_pinned = is_pinned
    commit(db, "update note")
    return note


def delete_note(db: Session, organization_id: int, note_id: int) -> None:
    note = get_scoped(db, ClientNote, organization_id, note_id)
    db.delete(note)
    commit(db, "delete note")
