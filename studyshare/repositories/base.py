"""Storage abstraction over users and notes, shared by the SQL and in-memory backends."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, Field

from studyshare.models.user import Role

RATING_MIN = 1
RATING_MAX = 5


class UserRecord(BaseModel):
    """Stored user, including the password hash (never serialize this to clients)."""

    id: int
    username: str
    email: str
    password_hash: str
    role: Role = Role.USER
    created_at: datetime
    updated_at: datetime


class OwnerRecord(BaseModel):
    """The uploader fields expanded onto a note."""

    id: int
    username: str
    email: str


class NoteRecord(BaseModel):
    """Stored note metadata plus its resolved uploader (None if the user is gone)."""

    id: int
    title: str
    subject: str
    description: str | None = None
    file_name: str
    original_name: str
    mime_type: str
    size: int
    uploaded_by: int
    owner: OwnerRecord | None = None
    downloads: int = 0
    rating: float = 0.0
    ratings: dict[int, int] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class NoteDraft(BaseModel):
    """Validated metadata for a note whose file has already been stored."""

    title: str
    subject: str
    description: str | None = None
    file_name: str
    original_name: str
    mime_type: str
    size: int
    uploaded_by: int


def average_rating(values: Iterable[int]) -> float:
    """Mean of the ratings rounded half-up to one decimal; 0 when there are none."""
    values = list(values)
    if not values:
        return 0.0
    mean = Decimal(sum(values)) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class Store(ABC):
    """
    User and note persistence.

    Implementations must make increment_downloads atomic and keep
    NoteRecord.rating equal to average_rating(ratings) after every set_rating.
    """

    # Users

    @abstractmethod
    def create_user(
        self, username: str, email: str, password_hash: str, role: Role = Role.USER
    ) -> UserRecord:
        """Insert a user; raises Conflict if the email or username is taken."""

    @abstractmethod
    def get_user(self, user_id: int) -> UserRecord | None: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> UserRecord | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> UserRecord | None: ...

    @abstractmethod
    def update_password_hash(self, user_id: int, password_hash: str) -> UserRecord | None: ...

    @abstractmethod
    def list_users(self) -> list[UserRecord]:
        """All users ordered by id."""

    # Notes

    @abstractmethod
    def create_note(self, draft: NoteDraft) -> NoteRecord: ...

    @abstractmethod
    def get_note(self, note_id: int) -> NoteRecord | None: ...

    @abstractmethod
    def list_notes(
        self,
        subject: str | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[NoteRecord], int]:
        """
        Notes matching the filters, newest first (ties keep insertion order),
        sliced to [offset, offset + limit). Returns (page, total matching).

        search is a literal substring of title or description, compared after
        lowercasing both sides with Unicode rules (str.lower).
        """

    @abstractmethod
    def increment_downloads(self, note_id: int) -> bool:
        """Atomically add one to downloads. False if the note does not exist."""

    @abstractmethod
    def set_rating(self, note_id: int, user_id: int, value: int) -> NoteRecord | None:
        """Record (or replace) a user's rating and recompute the average atomically."""

    @abstractmethod
    def delete_note(self, note_id: int) -> NoteRecord | None:
        """Remove a note's metadata; returns what was removed."""

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        return None
