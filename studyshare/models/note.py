"""ORM models for uploaded notes and their per-user ratings."""

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from studyshare.models.base import Base, utcnow


class Note(Base):
    """
    Metadata for one uploaded study file.

    file_name is the generated name on disk; original_name is only shown to clients.
    rating is derived from the ratings rows and recomputed whenever they change.
    """

    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    file_name = Column(String(64), nullable=False, unique=True)
    original_name = Column(String(512), nullable=False)
    mime_type = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    downloads = Column(Integer, nullable=False, default=0)
    rating = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    ratings = relationship(
        "NoteRating",
        cascade="all, delete-orphan",
        order_by="NoteRating.id",
        lazy="selectin",
    )


class NoteRating(Base):
    """One user's 1-5 rating of a note; a user re-rating replaces their row."""

    __tablename__ = "note_ratings"
    __table_args__ = (
        UniqueConstraint("note_id", "user_id", name="uq_note_ratings_note_user"),
        CheckConstraint("value >= 1 AND value <= 5", name="ck_note_ratings_value"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    value = Column(SmallInteger, nullable=False)
