"""EntityStore — repository pattern with ACID transaction coordination.

The EntityStore is the single dependency injected into every service. It
owns the database engine and the rule registry.  :meth:`EntityStore.transaction`
yields a :class:`StoreTransaction` whose record writes, reference lookups
and version bump all share one connection, so they commit or roll back
together.

Reads that are not part of a mutation go through the read helpers on the
store itself; each opens its own short-lived connection.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from mantenedor.domain.rules import DEFAULT_RULE_SETS, RuleRegistry, RuleSet
from mantenedor.infrastructure.database.counters import bump_version, read_version
from mantenedor.infrastructure.database.engine import SQLITE_BEGIN_OPTION, init_database
from mantenedor.infrastructure.references import ReferenceChecker
from mantenedor.infrastructure.repositories.records import RecordRepository

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from mantenedor.config.settings import MantenedorSettings
    from mantenedor.domain.records import Record

logger = logging.getLogger(__name__)


def build_rule_registry(settings: MantenedorSettings) -> RuleRegistry:
    """Combine the built-in rule sets with those declared in ``[schemas]``.

    A type declared in TOML replaces the built-in rule set of the same name.
    """
    rule_sets: dict[str, RuleSet] = dict(DEFAULT_RULE_SETS)
    for record_type, schema in settings.schemas.items():
        rule_sets[record_type] = RuleSet.from_dict(schema.rule_dicts())
    return RuleRegistry(rule_sets)


# ---------------------------------------------------------------------------
# StoreTransaction — yielded to callers within transaction()
# ---------------------------------------------------------------------------


@dataclass
class StoreTransaction:
    """Active transaction context: one connection, everything on it.

    All writes made through a StoreTransaction commit together when the
    ``with`` block exits normally and are rolled back on any exception.
    """

    conn: Connection
    records: RecordRepository = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.records = RecordRepository(self.conn)

    def reference_checker(self) -> ReferenceChecker:
        """A reference checker that sees this transaction's pending writes."""
        return ReferenceChecker(self.conn)

    def bump_version(self) -> int:
        """Increment the global version inside this transaction."""
        return bump_version(self.conn)


# ---------------------------------------------------------------------------
# EntityStore — the repository
# ---------------------------------------------------------------------------


class EntityStore:
    """Repository encapsulating database access and the rule registry.

    Constructed once from :class:`MantenedorSettings`.  Services receive
    the store via their :class:`BaseService` constructor.
    """

    def __init__(self, settings: MantenedorSettings, *, rules: RuleRegistry | None = None) -> None:
        self._settings = settings
        store_cfg = settings.store
        self._engine: Engine = init_database(
            settings.root,
            url=store_cfg.database_url,
            busy_timeout=store_cfg.busy_timeout,
        )
        self._rules = rules if rules is not None else build_rule_registry(settings)

    @property
    def root(self) -> Path:
        """The directory holding the default database."""
        return self._settings.root

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine (for direct access when needed)."""
        return self._engine

    @property
    def rules(self) -> RuleRegistry:
        """The immutable per-type rule registry."""
        return self._rules

    @property
    def settings(self) -> MantenedorSettings:
        """The resolved settings for this store."""
        return self._settings

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self._engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Atomic unit of work for one mutation.

        Commits when the block exits normally; any exception rolls back
        every write made on the transaction (records and version alike)
        and propagates.  On SQLite the transaction opens with
        ``BEGIN IMMEDIATE`` so concurrent writers wait on the busy timeout
        rather than failing on a stale read snapshot.

        Usage::

            with store.transaction() as txn:
                record = txn.records.create("COST_TYPE", "Fuel", {})
                txn.bump_version()
        """
        with self._engine.connect() as conn:
            conn = conn.execution_options(**{SQLITE_BEGIN_OPTION: "IMMEDIATE"})
            try:
                with conn.begin():
                    yield StoreTransaction(conn=conn)
            except BaseException:
                logger.debug("Store transaction rolled back", exc_info=True)
                raise

    @contextmanager
    def _read(self) -> Iterator[RecordRepository]:
        with self._engine.connect() as conn:
            yield RecordRepository(conn)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_version(self) -> int:
        """Current global version; creates the counter at 0 on first call."""
        with self._engine.begin() as conn:
            return read_version(conn)

    def get_record(self, record_id: int) -> Record | None:
        """Fetch one record by id, or None."""
        with self._read() as repo:
            return repo.get(record_id)

    def list_records(self) -> list[Record]:
        """All records ordered by ``(type, name)``."""
        with self._read() as repo:
            return repo.list_all()

    def list_records_by_type(self, record_type: str) -> list[Record]:
        """Records of one type ordered by name."""
        with self._read() as repo:
            return repo.list_by_type(record_type)

    def list_types(self) -> list[str]:
        """Types with at least one record, ascending."""
        with self._read() as repo:
            return repo.list_distinct_types()

