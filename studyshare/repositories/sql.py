"""SQLAlchemy-backed Store (PostgreSQL in production, SQLite for local runs)."""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from studyshare.core.database import check_db_connected
from studyshare.core.errors import Conflict
from studyshare.models import Note, NoteRating, User
from studyshare.models.base import utcnow
from studyshare.models.user import Role
from studyshare.repositories.base import (
    NoteDraft,
    NoteRecord,
    OwnerRecord,
    Store,
    UserRecord,
    average_rating,
)

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so search terms match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        role=user.role,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _note_record(note: Note, owner: User | None) -> NoteRecord:
    return NoteRecord(
        id=note.id,
        title=note.title,
        subject=note.subject,
        description=note.description,
        file_name=note.file_name,
        original_name=note.original_name,
        mime_type=note.mime_type,
        size=note.size,
        uploaded_by=note.uploaded_by,
        owner=(
            OwnerRecord(id=owner.id, username=owner.username, email=owner.email)
            if owner is not None
            else None
        ),
        downloads=note.downloads,
        rating=note.rating,
        ratings={r.user_id: r.value for r in note.ratings},
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


class SqlStore(Store):
    """Store over an Engine; every operation runs in its own short-lived session."""

    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow) -> None:
        self.engine = engine
        self._clock = clock
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )

    def _session(self) -> Session:
        return self._session_factory()

    def _load_note(self, session: Session, note_id: int) -> NoteRecord | None:
        row = session.execute(
            select(Note, User)
            .outerjoin(User, Note.uploaded_by == User.id)
            .where(Note.id == note_id)
        ).first()
        if row is None:
            return None
        return _note_record(row[0], row[1])

    def create_user(
        self, username: str, email: str, password_hash: str, role: Role = Role.USER
    ) -> UserRecord:
        with self._session() as session:
            existing = session.scalars(
                select(User).where(or_(User.email == email, User.username == username))
            ).first()
            if existing is not None:
                raise Conflict("User already exists with this email or username")
            now = self._clock()
            user = User(
                username=username,
                email=email,
                password_hash=password_hash,
                role=role,
                created_at=now,
                updated_at=now,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError as e:
                # Lost a race with a concurrent registration for the same identity.
                session.rollback()
                raise Conflict("User already exists with this email or username") from e
            return _user_record(user)

    def get_user(self, user_id: int) -> UserRecord | None:
        with self._session() as session:
            user = session.get(User, user_id)
            return _user_record(user) if user else None

    def get_user_by_email(self, email: str) -> UserRecord | None:
        with self._session() as session:
            user = session.scalars(select(User).where(User.email == email)).first()
            return _user_record(user) if user else None

    def get_user_by_username(self, username: str) -> UserRecord | None:
        with self._session() as session:
            user = session.scalars(select(User).where(User.username == username)).first()
            return _user_record(user) if user else None

    def update_password_hash(self, user_id: int, password_hash: str) -> UserRecord | None:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            user.password_hash = password_hash
            user.updated_at = self._clock()
            session.commit()
            return _user_record(user)

    def list_users(self) -> list[UserRecord]:
        with self._session() as session:
            return [_user_record(u) for u in session.scalars(select(User).order_by(User.id))]

    def create_note(self, draft: NoteDraft) -> NoteRecord:
        with self._session() as session:
            now = self._clock()
            note = Note(**draft.model_dump(), downloads=0, rating=0.0, created_at=now, updated_at=now)
            session.add(note)
            session.commit()
            return self._load_note(session, note.id)

    def get_note(self, note_id: int) -> NoteRecord | None:
        with self._session() as session:
            return self._load_note(session, note_id)

    def list_notes(
        self,
        subject: str | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[NoteRecord], int]:
        conditions = []
        if subject:
            conditions.append(Note.subject == subject)
        if search:
            pattern = f"%{_escape_like(search.lower())}%"
            conditions.append(
                or_(
                    func.lower(Note.title).like(pattern, escape="\\"),
                    func.lower(Note.description).like(pattern, escape="\\"),
                )
            )
        with self._session() as session:
            total = session.scalar(select(func.count(Note.id)).where(*conditions))
            query = (
                select(Note, User)
                .outerjoin(User, Note.uploaded_by == User.id)
                .where(*conditions)
                .order_by(Note.created_at.desc(), Note.id.asc())
                .offset(offset)
            )
            if limit is not None:
                query = query.limit(limit)
            rows = session.execute(query).all()
            return [_note_record(note, owner) for note, owner in rows], total or 0

    def increment_downloads(self, note_id: int) -> bool:
        # Single UPDATE so concurrent downloads never lose an increment.
        with self._session() as session:
            result = session.execute(
                update(Note)
                .where(Note.id == note_id)
                .values(downloads=Note.downloads + 1)
            )
            session.commit()
            return result.rowcount > 0

    def set_rating(self, note_id: int, user_id: int, value: int) -> NoteRecord | None:
        """
        Upsert the user's rating and recompute the note average in one transaction.

        The note row is written first, which serializes raters of the same note
        (row lock on PostgreSQL, database write lock on SQLite), so the average
        is always computed over every committed rating.
        """
        insert = pg_insert if self.engine.dialect.name == "postgresql" else sqlite_insert
        with self._session() as session:
            now = self._clock()
            claimed = session.execute(
                update(Note)
                .where(Note.id == note_id)
                .values(updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 0:
                session.rollback()
                return None
            upsert = insert(NoteRating).values(note_id=note_id, user_id=user_id, value=value)
            session.execute(
                upsert.on_conflict_do_update(
                    index_elements=["note_id", "user_id"],
                    set_={"value": upsert.excluded.value},
                )
            )
            values = session.scalars(
                select(NoteRating.value).where(NoteRating.note_id == note_id)
            ).all()
            session.execute(
                update(Note)
                .where(Note.id == note_id)
                .values(rating=average_rating(values), updated_at=now)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return self._load_note(session, note_id)

    def delete_note(self, note_id: int) -> NoteRecord | None:
        with self._session() as session:
            record = self._load_note(session, note_id)
            if record is None:
                return None
            note = session.get(Note, note_id)
            session.delete(note)
            session.commit()
            return record

    def ping(self) -> bool:
        return check_db_connected(self.engine)

    def close(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()
