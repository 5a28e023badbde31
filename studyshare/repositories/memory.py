"""In-process store for tests and local development. Data is lost on restart."""

import threading
from collections.abc import Callable
from datetime import datetime

from studyshare.core.errors import Conflict
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


class MemoryStore(Store):
    """Dict-backed Store; one lock guards every read and write of the shared dicts."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._users: dict[int, UserRecord] = {}
        self._notes: dict[int, NoteRecord] = {}
        self._next_user_id = 1
        self._next_note_id = 1

    def _owner(self, user_id: int) -> OwnerRecord | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        return OwnerRecord(id=user.id, username=user.username, email=user.email)

    def _with_owner(self, note: NoteRecord) -> NoteRecord:
        return note.model_copy(update={"owner": self._owner(note.uploaded_by)}, deep=True)

    def create_user(
        self, username: str, email: str, password_hash: str, role: Role = Role.USER
    ) -> UserRecord:
        with self._lock:
            for existing in self._users.values():
                if existing.email == email or existing.username == username:
                    raise Conflict("User already exists with this email or username")
            now = self._clock()
            user = UserRecord(
                id=self._next_user_id,
                username=username,
                email=email,
                password_hash=password_hash,
                role=role,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            self._next_user_id += 1
            return user.model_copy()

    def get_user(self, user_id: int) -> UserRecord | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_user_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy()
        return None

    def get_user_by_username(self, username: str) -> UserRecord | None:
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return user.model_copy()
        return None

    def update_password_hash(self, user_id: int, password_hash: str) -> UserRecord | None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            user.password_hash = password_hash
            user.updated_at = self._clock()
            return user.model_copy()

    def list_users(self) -> list[UserRecord]:
        with self._lock:
            return [u.model_copy() for u in sorted(self._users.values(), key=lambda u: u.id)]

    def create_note(self, draft: NoteDraft) -> NoteRecord:
        with self._lock:
            now = self._clock()
            note = NoteRecord(
                id=self._next_note_id,
                created_at=now,
                updated_at=now,
                **draft.model_dump(),
            )
            self._notes[note.id] = note
            self._next_note_id += 1
            return self._with_owner(note)

    def get_note(self, note_id: int) -> NoteRecord | None:
        with self._lock:
            note = self._notes.get(note_id)
            return self._with_owner(note) if note else None

    def list_notes(
        self,
        subject: str | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[NoteRecord], int]:
        needle = search.lower() if search else None
        with self._lock:
            notes = list(self._notes.values())
            if subject:
                notes = [n for n in notes if n.subject == subject]
            if needle:
                notes = [
                    n
                    for n in notes
                    if needle in n.title.lower() or needle in (n.description or "").lower()
                ]
            # sorted() is stable with reverse=True, so equal timestamps stay in insertion order.
            notes = sorted(notes, key=lambda n: n.created_at, reverse=True)
            end = None if limit is None else offset + limit
            return [self._with_owner(n) for n in notes[offset:end]], len(notes)

    def increment_downloads(self, note_id: int) -> bool:
        with self._lock:
            note = self._notes.get(note_id)
            if note is None:
                return False
            note.downloads += 1
            return True

    def set_rating(self, note_id: int, user_id: int, value: int) -> NoteRecord | None:
        with self._lock:
            note = self._notes.get(note_id)
            if note is None:
                return None
            note.ratings[user_id] = value
            note.rating = average_rating(note.ratings.values())
            note.updated_at = self._clock()
            return self._with_owner(note)

    def delete_note(self, note_id: int) -> NoteRecord | None:
        with self._lock:
            note = self._notes.pop(note_id, None)
            return self._with_owner(note) if note else None
