"""SQLAlchemy engine construction and connectivity checks."""

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, connection_record) -> None:
    # SQLite's built-in lower() folds ASCII only; search must fold like str.lower().
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Build an engine for DATABASE_URL.

    PostgreSQL gets pool_pre_ping. SQLite allows cross-thread use because
    sync endpoints run in the threadpool; in-memory SQLite shares one
    connection so every session sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        event.listen(engine, "connect", _register_sqlite_functions)
        return engine
    return create_engine(url, pool_pre_ping=True, echo=echo)


def check_db_connected(engine: Engine) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
