"""Transaction-bound reference lookups for cross-type validation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mantenedor.domain.records import coerce_record_id
from mantenedor.infrastructure.repositories.records import RecordRepository

if TYPE_CHECKING:
    from sqlalchemy import Connection


class ReferenceChecker:
    """Answers "does a record of type T with id X exist?" on one connection.

    Built from the same connection as the enclosing mutation so lookups
    see that transaction's own uncommitted writes.  Callable, so it can be
    passed straight to :meth:`RuleRegistry.validate`.
    """

    def __init__(self, conn: Connection) -> None:
        self._records = RecordRepository(conn)

    def exists(self, record_type: str, record_id: Any) -> bool:
        """True iff ``(record_type, record_id)`` is persisted.

        Ids that cannot be coerced to an integer yield False.
        """
        coerced = coerce_record_id(record_id)
        if coerced is None:
            return False
        return self._records.exists(record_type, coerced)

    def __call__(self, record_type: str, record_id: Any) -> bool:
        return self.exists(record_type, record_id)
