"""Persistence backends behind a single Store interface."""

import logging

from studyshare.core.config import Settings
from studyshare.core.database import create_db_engine
from studyshare.repositories.base import (
    NoteDraft,
    NoteRecord,
    OwnerRecord,
    Store,
    UserRecord,
    average_rating,
)
from studyshare.repositories.memory import MemoryStore
from studyshare.repositories.sql import SqlStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> Store:
    """
    Construct the configured backend. Raises RuntimeError if the SQL database
    cannot be reached, since the service cannot run without it.
    """
    if settings.STORAGE_BACKEND == "memory":
        logger.warning("Using in-memory store; data will not survive a restart.")
        return MemoryStore()

    engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    if settings.DB_CREATE_ALL:
        from studyshare.models import Base

        Base.metadata.create_all(bind=engine)
    store = SqlStore(engine)
    if not store.ping():
        engine.dispose()
        raise RuntimeError("Database is not reachable; check DATABASE_URL.")
    return store


__all__ = [
    "MemoryStore",
    "NoteDraft",
    "NoteRecord",
    "OwnerRecord",
    "SqlStore",
    "Store",
    "UserRecord",
    "average_rating",
    "build_store",
]
