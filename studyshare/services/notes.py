"""Note catalog: upload intake, filtered listing, download gate, ratings and moderation."""

import logging
import math
from pathlib import Path
from typing import BinaryIO

from pydantic import ValidationError

from studyshare.core.errors import NotFound, ValidationFailed, field_errors_from_pydantic
from studyshare.repositories.base import (
    RATING_MAX,
    RATING_MIN,
    NoteDraft,
    NoteRecord,
    Store,
    UserRecord,
)
from studyshare.schemas.notes import NoteListResponse, NoteOut, NoteUploadForm, Pagination
from studyshare.services.file_storage import FileStorage, allowed_extension

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
ALL_SUBJECTS = "all"
DEFAULT_MIME_TYPE = "application/octet-stream"


def parse_upload_form(
    title: str | None, subject: str | None, description: str | None
) -> NoteUploadForm:
    """Validate upload metadata; every field violation is reported at once."""
    try:
        return NoteUploadForm.model_validate(
            {"title": title, "subject": subject, "description": description}
        )
    except ValidationError as e:
        raise ValidationFailed(errors=field_errors_from_pydantic(e.errors())) from e


def upload_note(
    store: Store,
    storage: FileStorage,
    *,
    stream: BinaryIO | None,
    original_name: str | None,
    mime_type: str | None,
    form: NoteUploadForm,
    uploader: UserRecord,
) -> NoteRecord:
    """
    Store the file under a generated name and persist its metadata.

    Metadata and extension are checked before any bytes are written. If the
    metadata insert fails the stored file is removed again.
    """
    if stream is None or not original_name:
        raise ValidationFailed("No file uploaded")
    allowed_extension(original_name)

    stored = storage.save(stream, original_name)
    draft = NoteDraft(
        title=form.title,
        subject=form.subject,
        description=form.description,
        file_name=stored.file_name,
        original_name=original_name,
        mime_type=mime_type or DEFAULT_MIME_TYPE,
        size=stored.size,
        uploaded_by=uploader.id,
    )
    try:
        note = store.create_note(draft)
    except Exception:
        storage.delete(stored.file_name)
        raise
    logger.info(
        "Note id=%s uploaded by user id=%s (subject=%s, %d bytes)",
        note.id,
        uploader.id,
        note.subject,
        note.size,
    )
    return note


def list_notes(
    store: Store,
    subject: str | None = None,
    search: str | None = None,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
) -> NoteListResponse:
    """
    Filter by exact subject ("all" disables it) and case-insensitive substring
    in title or description, newest first, then slice out the requested page.
    """
    errors = []
    if page < 1:
        errors.append({"field": "page", "message": "page must be at least 1"})
    if limit < 1 or limit > MAX_LIMIT:
        errors.append({"field": "limit", "message": f"limit must be between 1 and {MAX_LIMIT}"})
    if errors:
        raise ValidationFailed(errors=errors)

    subject = (subject or "").strip()
    if subject == ALL_SUBJECTS:
        subject = ""
    search = (search or "").strip()

    notes, total = store.list_notes(
        subject=subject or None,
        search=search or None,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return NoteListResponse(
        notes=[NoteOut.from_record(n) for n in notes],
        pagination=Pagination(
            page=page, limit=limit, total=total, pages=math.ceil(total / limit)
        ),
    )


def get_note(store: Store, note_id: int) -> NoteRecord:
    note = store.get_note(note_id)
    if note is None:
        raise NotFound("Note not found")
    return note


def prepare_download(store: Store, storage: FileStorage, note_id: int) -> tuple[NoteRecord, Path]:
    """
    Resolve a note to its file and count the download.

    The counter is bumped before any bytes are sent, so an aborted transfer
    still counts. A missing file leaves both the metadata and the counter alone.
    """
    note = get_note(store, note_id)
    if not storage.exists(note.file_name):
        logger.warning(
            "Note id=%s references missing file %s; metadata left in place",
            note.id,
            note.file_name,
        )
        raise NotFound("File not found")
    if not store.increment_downloads(note.id):
        # Deleted between lookup and increment.
        raise NotFound("Note not found")
    return note, storage.path_for(note.file_name)


def rate_note(store: Store, note_id: int, user: UserRecord, value: int) -> NoteRecord:
    if not RATING_MIN <= value <= RATING_MAX:
        raise ValidationFailed(
            errors=[{"field": "rating", "message": f"rating must be between {RATING_MIN} and {RATING_MAX}"}]
        )
    note = store.set_rating(note_id, user.id, value)
    if note is None:
        raise NotFound("Note not found")
    return note


def all_notes(store: Store) -> list[NoteOut]:
    """Every note, newest first (admin content list)."""
    notes, _ = store.list_notes()
    return [NoteOut.from_record(n) for n in notes]


def delete_note(store: Store, storage: FileStorage, note_id: int, actor: UserRecord) -> NoteRecord:
    """Remove a note's metadata and its stored file (an already-missing file is fine)."""
    note = store.delete_note(note_id)
    if note is None:
        raise NotFound("Note not found")
    if not storage.delete(note.file_name):
        logger.warning("Stored file %s for note id=%s was already missing", note.file_name, note.id)
    logger.info("Note id=%s removed by admin id=%s", note.id, actor.id)
    return note
