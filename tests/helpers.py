"""Shared fixtures for the test suite."""

import uuid
from datetime import UTC, datetime, timedelta

from studyshare.core.security import hash_password
from studyshare.models.user import Role
from studyshare.repositories.base import NoteDraft, Store, UserRecord


class StepClock:
    """Deterministic clock: each call advances by `step` (zero step gives identical timestamps)."""

    def __init__(self, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        self.step = step

    def __call__(self) -> datetime:
        self.now += self.step
        return self.now


def make_user(
    store: Store,
    username: str = "alice",
    email: str = "alice@u.edu",
    password: str = "secret1",
    role: Role = Role.USER,
) -> UserRecord:
    return store.create_user(username, email, hash_password(password, rounds=4), role)


def make_note(store: Store, uploader: UserRecord, title: str = "Notes", **kwargs: object):
    """Insert note metadata directly (no file on disk)."""
    defaults = {
        "subject": "Math",
        "description": None,
        "file_name": f"{uuid.uuid4().hex}.pdf",
        "original_name": f"{title}.pdf",
        "mime_type": "application/pdf",
        "size": 10,
    }
    defaults.update(kwargs)
    return store.create_note(NoteDraft(title=title, uploaded_by=uploader.id, **defaults))
