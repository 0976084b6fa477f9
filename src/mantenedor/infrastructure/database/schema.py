"""SQLAlchemy Core table definitions for the mantenedor database.

Two tables: ``records`` holds every record of every type, and
``store_version`` holds the single global version row.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()

records = Table(
    "records",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type", Text, nullable=False),
    Column("name", Text, nullable=False),
    Column("payload", JSON, nullable=False),  # open JSON object
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    CheckConstraint("trim(type) <> ''", name="ck_records_type_not_blank"),
    CheckConstraint("trim(name) <> ''", name="ck_records_name_not_blank"),
    # Never reuse ids of deleted rows.
    sqlite_autoincrement=True,
)

Index("ix_records_type_name", records.c.type, records.c.name)

# Singleton row: the primary key is pinned to VERSION_ROW_ID so concurrent
# bootstraps collide on the key instead of creating a second row.
VERSION_ROW_ID = 1

store_version = Table(
    "store_version",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("version", Integer, nullable=False, default=0, server_default="0"),
    Column("updated_at", Text),
    CheckConstraint(f"id = {VERSION_ROW_ID}", name="ck_store_version_singleton"),
)
