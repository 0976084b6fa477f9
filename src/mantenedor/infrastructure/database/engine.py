"""Database engine setup.

SQLite is the default backend: WAL mode for concurrent reads, foreign
keys on, and a busy timeout so concurrent writers queue instead of
failing.  The default database lives at {root}/.mantenedor/mantenedor.db;
any SQLAlchemy URL can be supplied instead (PostgreSQL is the other
supported dialect).

SQLAlchemy Core (not ORM) is used: records are plain rows with a JSON
payload, there is nothing for an identity map to track.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine, make_url

from mantenedor.infrastructure.database.counters import (
    SUPPORTED_DIALECTS,
    UnsupportedDialectError,
)
from mantenedor.infrastructure.database.schema import metadata

DATA_DIRNAME = ".mantenedor"
DB_FILENAME = "mantenedor.db"

# Execution option read by the "begin" hook; see EntityStore.transaction().
SQLITE_BEGIN_OPTION = "sqlite_begin"


def _install_sqlite_hooks(engine: Engine) -> None:
    """Take over SQLite transaction control from the pysqlite driver.

    pysqlite only emits BEGIN before DML, so SELECTs issued early in a
    transaction would run outside it.  Emitting BEGIN ourselves keeps
    reads and writes in one transaction and lets write transactions ask
    for ``BEGIN IMMEDIATE``.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _do_begin(conn: Connection) -> None:
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION, "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")


def create_db_engine(url: str, *, busy_timeout: float = 30.0) -> Engine:
    """Create an engine for *url*, applying SQLite tuning when relevant.

    Raises:
        UnsupportedDialectError: The URL names a backend other than SQLite
            or PostgreSQL.  Checked before any driver is loaded.
    """
    backend = make_url(url).get_backend_name()
    if backend not in SUPPORTED_DIALECTS:
        raise UnsupportedDialectError(backend)
    if backend == "sqlite":
        engine = create_engine(url, connect_args={"timeout": busy_timeout})
        _install_sqlite_hooks(engine)
        return engine
    return create_engine(url, pool_pre_ping=True)


def default_database_url(root: Path) -> str:
    """SQLite URL for the default database file under *root*."""
    return f"sqlite:///{root / DATA_DIRNAME / DB_FILENAME}"


def init_database(
    root: Path,
    *,
    url: str | None = None,
    busy_timeout: float = 30.0,
) -> Engine:
    """Initialize the mantenedor database and return its engine.

    Without *url*, creates ``{root}/.mantenedor/`` and the SQLite file
    inside it.  All tables from :data:`schema.metadata` are created.

    The version row is *not* seeded here; it is created lazily on first
    read or first mutation.

    Idempotent — safe to call on an existing database.
    """
    if url is None:
        (root / DATA_DIRNAME).mkdir(parents=True, exist_ok=True)
        url = default_database_url(root)

    engine = create_db_engine(url, busy_timeout=busy_timeout)
    metadata.create_all(engine)
    return engine
