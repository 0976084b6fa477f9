"""Database engine, schema, and the global version counter via SQLAlchemy Core."""

from mantenedor.infrastructure.database.counters import bump_version, read_version
from mantenedor.infrastructure.database.engine import create_db_engine, init_database
from mantenedor.infrastructure.database.schema import (
    VERSION_ROW_ID,
    metadata,
    records,
    store_version,
)

__all__ = [
    "VERSION_ROW_ID",
    "bump_version",
    "create_db_engine",
    "init_database",
    "metadata",
    "read_version",
    "records",
    "store_version",
]
