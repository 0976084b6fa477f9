"""The global version counter.

A single row in ``store_version`` counts committed mutations across all
record types.  Both paths are single statements so they are atomic under
concurrent writers:

- :func:`read_version` — ``INSERT … ON CONFLICT DO NOTHING`` then read,
  so the first reader creates the row at 0 and every other reader
  (concurrent or later) sees the existing one.
- :func:`bump_version` — upsert that inserts 1 or sets
  ``version = version + 1``; the increment happens in SQL, never as a
  read-then-write in Python.

The caller owns the transaction — pass a ``Connection`` from inside
``engine.begin()`` (or a store transaction) so the bump commits or rolls
back together with the record write it describes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from mantenedor.domain.records import utc_now_iso
from mantenedor.infrastructure.database.schema import VERSION_ROW_ID, store_version

if TYPE_CHECKING:
    from sqlalchemy import Connection

_UPSERT_INSERTS: dict[str, Any] = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}

SUPPORTED_DIALECTS: frozenset[str] = frozenset(_UPSERT_INSERTS)


class UnsupportedDialectError(ValueError):
    """The database backend has no ON CONFLICT upsert the counter can use."""

    def __init__(self, dialect: str) -> None:
        super().__init__(
            f"Unsupported database dialect for the version counter: {dialect!r}. "
            f"Expected one of {sorted(SUPPORTED_DIALECTS)}"
        )
        self.dialect = dialect


def _upsert_insert(conn: Connection) -> Any:
    """Return the dialect-specific ``insert`` construct supporting ON CONFLICT."""
    dialect = conn.dialect.name
    try:
        return _UPSERT_INSERTS[dialect]
    except KeyError:
        raise UnsupportedDialectError(dialect) from None


def _current(conn: Connection) -> int:
    return int(
        conn.execute(
            select(store_version.c.version).where(store_version.c.id == VERSION_ROW_ID)
        ).scalar_one()
    )


def read_version(conn: Connection) -> int:
    """Return the current version, creating the row at 0 if it is absent."""
    insert = _upsert_insert(conn)
    conn.execute(
        insert(store_version)
        .values(id=VERSION_ROW_ID, version=0, updated_at=utc_now_iso())
        .on_conflict_do_nothing(index_elements=[store_version.c.id])
    )
    return _current(conn)


def bump_version(conn: Connection) -> int:
    """Increment the version by exactly one and return the new value.

    Creates the row at 1 when no version row exists yet (first write
    before any read).

    Raises:
        UnsupportedDialectError: The connection's dialect has no upsert.
    """
    insert = _upsert_insert(conn)
    stmt = insert(store_version).values(id=VERSION_ROW_ID, version=1, updated_at=utc_now_iso())
    stmt = stmt.on_conflict_do_update(
        index_elements=[store_version.c.id],
        set_={
            "version": store_version.c.version + 1,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    conn.execute(stmt)
    return _current(conn)
