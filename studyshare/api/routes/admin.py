"""Admin-only listing and moderation routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from studyshare.api.deps import get_file_storage, get_store
from studyshare.api.routes.auth import require_admin
from studyshare.repositories.base import Store, UserRecord
from studyshare.schemas.auth import MessageResponse, UserOut, UsersListResponse
from studyshare.schemas.notes import AdminNotesResponse
from studyshare.services import notes as notes_service
from studyshare.services.file_storage import FileStorage

router = APIRouter()


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[UserRecord, Depends(require_admin)],
    store: Annotated[Store, Depends(get_store)],
) -> UsersListResponse:
    """List all users (admin only)."""
    return UsersListResponse(
        users=[UserOut.model_validate(u, from_attributes=True) for u in store.list_users()]
    )


@router.get("/notes", response_model=AdminNotesResponse)
def list_all_notes(
    _admin: Annotated[UserRecord, Depends(require_admin)],
    store: Annotated[Store, Depends(get_store)],
) -> AdminNotesResponse:
    return AdminNotesResponse(notes=notes_service.all_notes(store))


@router.delete("/notes/{note_id}", response_model=MessageResponse)
def remove_note(
    note_id: int,
    admin: Annotated[UserRecord, Depends(require_admin)],
    store: Annotated[Store, Depends(get_store)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
) -> MessageResponse:
    """Take a note down: deletes its metadata and stored file."""
    notes_service.delete_note(store, storage, note_id, admin)
    return MessageResponse(message="Note deleted")
