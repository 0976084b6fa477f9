"""Record repository — CRUD over the ``records`` table.

Bound to a single ``Connection``: inside a store transaction every call
participates in that transaction; for reads, pass a plain connection.
Nothing here touches the version counter — bumping it is the mutation
service's job.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update

from mantenedor.domain.records import Record, merge_payload, normalize_label, utc_now_iso
from mantenedor.infrastructure.database.schema import records

if TYPE_CHECKING:
    from sqlalchemy import Connection, Row


class RecordValidationError(ValueError):
    """A record's fixed fields (type or name) are empty after trimming."""


class RecordNotFoundError(LookupError):
    """No record exists with the requested id."""

    def __init__(self, record_id: int) -> None:
        super().__init__(f"No record found with id: {record_id}")
        self.record_id = record_id


def _to_record(row: Row[Any]) -> Record:
    return Record(
        id=int(row.id),
        type=row.type,
        name=row.name,
        payload=dict(row.payload or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class RecordRepository:
    """Encapsulates SQL for record reads and writes on one connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, record_type: str, name: str, payload: dict[str, Any]) -> Record:
        """Insert a new record and return it with its assigned id.

        Raises:
            RecordValidationError: If *record_type* or *name* is blank.
        """
        clean_type = normalize_label(record_type)
        if clean_type is None:
            raise RecordValidationError("Type must be a non-empty string")
        clean_name = normalize_label(name)
        if clean_name is None:
            raise RecordValidationError("Name must be a non-empty string")

        now = utc_now_iso()
        result = self._conn.execute(
            insert(records).values(
                type=clean_type,
                name=clean_name,
                payload=dict(payload),
                created_at=now,
                updated_at=now,
            )
        )
        record_id = int(result.inserted_primary_key[0])
        return Record(
            id=record_id,
            type=clean_type,
            name=clean_name,
            payload=dict(payload),
            created_at=now,
            updated_at=now,
        )

    def update(self, record_id: int, name: str | None, patch: dict[str, Any]) -> Record:
        """Merge *patch* into the stored payload; replace name if given.

        Raises:
            RecordNotFoundError: If *record_id* does not exist.
            RecordValidationError: If *name* is given but blank.
        """
        current = self.get(record_id)
        if current is None:
            raise RecordNotFoundError(record_id)

        new_name = current.name
        if name is not None:
            clean_name = normalize_label(name)
            if clean_name is None:
                raise RecordValidationError("Name must be a non-empty string")
            new_name = clean_name

        merged = merge_payload(current.payload, patch)
        now = utc_now_iso()
        self._conn.execute(
            update(records)
            .where(records.c.id == record_id)
            .values(name=new_name, payload=merged, updated_at=now)
        )
        return Record(
            id=current.id,
            type=current.type,
            name=new_name,
            payload=merged,
            created_at=current.created_at,
            updated_at=now,
        )

    def delete(self, record_id: int) -> None:
        """Remove a record.

        Raises:
            RecordNotFoundError: If *record_id* does not exist.
        """
        result = self._conn.execute(delete(records).where(records.c.id == record_id))
        if result.rowcount == 0:
            raise RecordNotFoundError(record_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: int, *, for_update: bool = False) -> Record | None:
        """Fetch one record by id, or None.

        *for_update* locks the row until the enclosing transaction ends
        (``SELECT … FOR UPDATE``; SQLite has no row locks and relies on
        ``BEGIN IMMEDIATE`` instead).
        """
        stmt = select(records).where(records.c.id == record_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = self._conn.execute(stmt).first()
        return _to_record(row) if row is not None else None

    def exists(self, record_type: str, record_id: int) -> bool:
        """Whether a record with exactly this ``(type, id)`` pair exists."""
        row = self._conn.execute(
            select(records.c.id).where(records.c.id == record_id, records.c.type == record_type)
        ).first()
        return row is not None

    def list_all(self) -> list[Record]:
        """All records ordered by ``(type, name)``."""
        rows = self._conn.execute(
            select(records).order_by(records.c.type, records.c.name, records.c.id)
        ).all()
        return [_to_record(row) for row in rows]

    def list_by_type(self, record_type: str) -> list[Record]:
        """Records of one type ordered by name."""
        rows = self._conn.execute(
            select(records)
            .where(records.c.type == record_type)
            .order_by(records.c.name, records.c.id)
        ).all()
        return [_to_record(row) for row in rows]

    def list_distinct_types(self) -> list[str]:
        """Types that currently have at least one record, ascending."""
        rows = self._conn.execute(
            select(records.c.type).distinct().order_by(records.c.type)
        ).all()
        return [row.type for row in rows]
