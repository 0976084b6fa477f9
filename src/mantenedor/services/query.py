"""QueryService — read-side operations over records, types, and rule sets.

Reads run outside any write transaction.  The only read with a side
effect is the lazy creation of the version row, which is itself a single
atomic statement (see :mod:`mantenedor.infrastructure.database.counters`).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from mantenedor.services.base import BaseService
from mantenedor.services.result import INVALID_INPUT, ServiceResult
from mantenedor.services.telemetry import trace_span, traced


class QueryService(BaseService):
    """Retrieval of records, the version counter, and validation rules."""

    @traced
    def get_version(self) -> ServiceResult:
        """Current global version (0 for a store that was never written)."""
        op = "get_version"
        try:
            version = self._store.get_version()
        except SQLAlchemyError:
            return self._internal_failure(op)
        return ServiceResult(ok=True, op=op, data={"version": version})

    @traced
    def get_all(self) -> ServiceResult:
        """Every record grouped by type, with the current version.

        The version is read before the records: a concurrent write may
        make the items newer than the version, never older, so a client
        caching by version refetches rather than keeping stale data.
        """
        op = "get_all"
        try:
            with trace_span("version"):
                version = self._store.get_version()
            with trace_span("records"):
                records = self._store.list_records()
        except SQLAlchemyError:
            return self._internal_failure(op)

        items_by_type: dict[str, list[dict[str, Any]]] = {}
        for record in records:
            items_by_type.setdefault(record.type, []).append(record.to_view())

        return ServiceResult(
            ok=True,
            op=op,
            data={"version": version, "itemsByType": items_by_type},
        )

    @traced
    def get_by_type(self, record_type: Any) -> ServiceResult:
        """Records of one type, ordered by name."""
        op = "get_by_type"
        if not isinstance(record_type, str) or not record_type.strip():
            return self._error(op, INVALID_INPUT, "Type parameter is required")

        try:
            records = self._store.list_records_by_type(record_type)
        except SQLAlchemyError:
            return self._internal_failure(op)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "type": record_type,
                "count": len(records),
                "items": [record.to_view() for record in records],
            },
        )

    @traced
    def get_by_id(self, record_id: Any) -> ServiceResult:
        """One record, including its type."""
        op = "get_by_id"
        parsed = self._parse_id(op, record_id)
        if isinstance(parsed, ServiceResult):
            return parsed

        try:
            record = self._store.get_record(parsed)
        except SQLAlchemyError:
            return self._internal_failure(op)
        if record is None:
            return self._not_found(op, parsed)

        return ServiceResult(ok=True, op=op, data={"item": record.to_view(include_type=True)})

    @traced
    def list_types(self) -> ServiceResult:
        """Distinct types that currently hold at least one record."""
        op = "list_types"
        try:
            types = self._store.list_types()
        except SQLAlchemyError:
            return self._internal_failure(op)
        return ServiceResult(ok=True, op=op, data={"count": len(types), "types": types})

    def get_schema(self, record_type: str | None = None) -> ServiceResult:
        """Describe registered rule sets.

        With *record_type*, reports whether that type is validated and its
        field rules; without, lists every type that has a rule set.
        """
        op = "get_schema"
        rules = self._store.rules

        if record_type is None:
            schemas: dict[str, Any] = {}
            for known_type in rules.types:
                known = rules.get_schema(known_type)
                if known is not None:
                    schemas[known_type] = known.describe()
            return ServiceResult(ok=True, op=op, data={"count": len(schemas), "schemas": schemas})

        rule_set = rules.get_schema(record_type)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "type": record_type,
                "validated": rules.has_validation(record_type),
                "fields": rule_set.describe() if rule_set is not None else {},
            },
        )
