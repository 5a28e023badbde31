"""Notes routes: upload, list, detail, download and rating."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse

from studyshare.api.deps import get_file_storage, get_store
from studyshare.api.routes.auth import get_current_user
from studyshare.core.errors import ValidationFailed
from studyshare.repositories.base import Store, UserRecord
from studyshare.schemas.notes import (
    NoteListResponse,
    NoteMessageResponse,
    NoteOut,
    NoteResponse,
    RatingRequest,
)
from studyshare.services import notes as notes_service
from studyshare.services.file_storage import FileStorage

router = APIRouter()


@router.post("/upload", response_model=NoteMessageResponse)
def upload_note(
    current_user: Annotated[UserRecord, Depends(get_current_user)],
    store: Annotated[Store, Depends(get_store)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
    file: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str | None, Form()] = None,
    subject: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
) -> NoteMessageResponse:
    """
    Upload one study file as multipart/form-data.

    - **file**: PDF, DOC, DOCX, PPT, PPTX, TXT, JPG, JPEG, PNG or GIF, at most 50 MB.
    - **title**, **subject**: required.
    - **description**: optional.
    """
    if file is None or not file.filename:
        raise ValidationFailed("No file uploaded")
    form = notes_service.parse_upload_form(title, subject, description)
    note = notes_service.upload_note(
        store,
        storage,
        stream=file.file,
        original_name=file.filename,
        mime_type=file.content_type,
        form=form,
        uploader=current_user,
    )
    return NoteMessageResponse(message="File uploaded successfully", note=NoteOut.from_record(note))


@router.get("", response_model=NoteListResponse)
def list_notes(
    store: Annotated[Store, Depends(get_store)],
    subject: str | None = None,
    search: str | None = None,
    page: Annotated[int, Query()] = notes_service.DEFAULT_PAGE,
    limit: Annotated[int, Query()] = notes_service.DEFAULT_LIMIT,
) -> NoteListResponse:
    """Public listing: filter by subject ("all" for every subject) and search title/description."""
    return notes_service.list_notes(store, subject=subject, search=search, page=page, limit=limit)


@router.get("/{note_id}", response_model=NoteResponse)
def get_note(note_id: int, store: Annotated[Store, Depends(get_store)]) -> NoteResponse:
    return NoteResponse(note=NoteOut.from_record(notes_service.get_note(store, note_id)))


@router.get("/{note_id}/download", response_class=FileResponse)
def download_note(
    note_id: int,
    _user: Annotated[UserRecord, Depends(get_current_user)],
    store: Annotated[Store, Depends(get_store)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
) -> FileResponse:
    """Stream the file back under its original name. Counts the download before sending."""
    note, path = notes_service.prepare_download(store, storage, note_id)
    return FileResponse(path, media_type=note.mime_type, filename=note.original_name)


@router.post("/{note_id}/rating", response_model=NoteMessageResponse)
def rate_note(
    note_id: int,
    body: RatingRequest,
    current_user: Annotated[UserRecord, Depends(get_current_user)],
    store: Annotated[Store, Depends(get_store)],
) -> NoteMessageResponse:
    """Rate a note 1-5. Rating again replaces your previous rating."""
    note = notes_service.rate_note(store, note_id, current_user, body.rating)
    return NoteMessageResponse(message="Rating saved", note=NoteOut.from_record(note))
