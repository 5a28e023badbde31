"""Request/response schemas for notes: upload form, listing, download and ratings."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from studyshare.repositories.base import NoteRecord

UNKNOWN_USERNAME = "Unknown"


class NoteUploadForm(BaseModel):
    """Metadata fields sent alongside the uploaded file."""

    title: str = Field(..., min_length=1, max_length=255, description="Note title")
    subject: str = Field(..., min_length=1, max_length=255, description="Subject, e.g. Math")
    description: str | None = Field(default=None, max_length=5000)

    @field_validator("title", "subject", mode="before")
    @classmethod
    def strip_required(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", mode="before")
    @classmethod
    def strip_optional(cls, v: object) -> object:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class UploaderOut(BaseModel):
    id: int
    username: str
    email: str


class RatingOut(BaseModel):
    user_id: int
    rating: int


class NoteOut(BaseModel):
    """Note metadata as returned to clients; the stored file name is not exposed."""

    id: int
    title: str
    subject: str
    description: str | None = None
    original_name: str
    mime_type: str
    size: int
    uploaded_by: UploaderOut
    downloads: int
    rating: float
    ratings: list[RatingOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, note: NoteRecord) -> "NoteOut":
        """Build from a stored note, substituting a placeholder uploader if the user is gone."""
        if note.owner is not None:
            uploader = UploaderOut(
                id=note.owner.id, username=note.owner.username, email=note.owner.email
            )
        else:
            uploader = UploaderOut(id=note.uploaded_by, username=UNKNOWN_USERNAME, email="")
        return cls(
            id=note.id,
            title=note.title,
            subject=note.subject,
            description=note.description,
            original_name=note.original_name,
            mime_type=note.mime_type,
            size=note.size,
            uploaded_by=uploader,
            downloads=note.downloads,
            rating=note.rating,
            ratings=[RatingOut(user_id=u, rating=v) for u, v in note.ratings.items()],
            created_at=note.created_at,
            updated_at=note.updated_at,
        )


class Pagination(BaseModel):
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0, description="ceil(total / limit)")


class NoteListResponse(BaseModel):
    """Response for GET /notes."""

    notes: list[NoteOut]
    pagination: Pagination


class NoteResponse(BaseModel):
    note: NoteOut


class NoteMessageResponse(BaseModel):
    """Upload and rating responses: a message plus the affected note."""

    message: str
    note: NoteOut


class AdminNotesResponse(BaseModel):
    notes: list[NoteOut]


class RatingRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
