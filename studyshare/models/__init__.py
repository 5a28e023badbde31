"""SQLAlchemy ORM models."""

from studyshare.models.base import Base
from studyshare.models.note import Note, NoteRating
from studyshare.models.user import Role, User

__all__ = ["Base", "Note", "NoteRating", "Role", "User"]
