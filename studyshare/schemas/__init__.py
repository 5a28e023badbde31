"""Pydantic request/response schemas."""

from studyshare.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    MessageResponse,
    PasswordChangeRequest,
    RegisterRequest,
    UserOut,
    UsersListResponse,
)
from studyshare.schemas.health import HealthResponse
from studyshare.schemas.notes import (
    AdminNotesResponse,
    NoteListResponse,
    NoteMessageResponse,
    NoteOut,
    NoteResponse,
    NoteUploadForm,
    Pagination,
    RatingRequest,
    UploaderOut,
)

__all__ = [
    "AdminNotesResponse",
    "AuthResponse",
    "HealthResponse",
    "LoginRequest",
    "MeResponse",
    "MessageResponse",
    "NoteListResponse",
    "NoteMessageResponse",
    "NoteOut",
    "NoteResponse",
    "NoteUploadForm",
    "Pagination",
    "PasswordChangeRequest",
    "RatingRequest",
    "RegisterRequest",
    "UploaderOut",
    "UserOut",
    "UsersListResponse",
]
