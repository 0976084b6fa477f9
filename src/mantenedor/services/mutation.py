"""MutationService — create, update, and delete as atomic units.

Pipeline (inside one store transaction):
    REFERENCE CHECKER → VALIDATE → PERSIST → BUMP VERSION → COMMIT

A rejected mutation raises :class:`_Rejected` inside the transaction so
it rolls back before any write is kept; the version counter therefore
only moves for mutations that commit.  Database errors roll back the
same way and surface as INTERNAL_ERROR.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from mantenedor.domain.records import merge_payload, normalize_label, split_reserved
from mantenedor.infrastructure.repositories.records import RecordNotFoundError
from mantenedor.services.base import BaseService
from mantenedor.services.result import INVALID_INPUT, ServiceResult
from mantenedor.services.telemetry import trace_span, traced

log = structlog.get_logger(__name__)


class _Rejected(Exception):
    """Abort the enclosing transaction and answer with *result*."""

    def __init__(self, result: ServiceResult) -> None:
        super().__init__(result.error.message if result.error else result.op)
        self.result = result


def _reserved_warnings(dropped: list[str]) -> list[str]:
    return [f"Ignoring reserved field in payload: {key}" for key in dropped]


class MutationService(BaseService):
    """Handles every write to the record store."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def create(
        self,
        record_type: Any,
        name: Any,
        payload: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Create a record of *record_type*, validating its payload first."""
        op = "create"

        clean_type = normalize_label(record_type)
        if clean_type is None:
            return self._error(op, INVALID_INPUT, "Type is required")
        clean_name = normalize_label(name)
        if clean_name is None:
            return self._error(op, INVALID_INPUT, "Name is required")
        if payload is not None and not isinstance(payload, dict):
            return self._error(op, INVALID_INPUT, "Payload must be an object")

        data, dropped = split_reserved(payload or {})
        warnings = _reserved_warnings(dropped)

        try:
            with self._store.transaction() as txn:
                with trace_span("validate"):
                    checker = txn.reference_checker()
                    vr = self._store.rules.validate(clean_type, data, checker)
                    if not vr.valid:
                        raise _Rejected(self._validation_failed(op, vr.errors))

                with trace_span("persist", type=clean_type):
                    record = txn.records.create(clean_type, clean_name, data)

                with trace_span("bump_version") as span:
                    version = txn.bump_version()
                    if span is not None:
                        span.annotate("version", version)
        except _Rejected as rejected:
            log.info("mutation.rejected", op=op, type=clean_type, reason=str(rejected))
            return rejected.result
        except SQLAlchemyError:
            log.error("mutation.failed", op=op, type=clean_type)
            return self._internal_failure(op)

        log.info("record.created", id=record.id, type=record.type, version=version)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "message": "Record created successfully",
                "version": version,
                "item": record.to_view(include_type=True),
            },
            warnings=warnings,
        )

    @traced
    def update(
        self,
        record_id: Any,
        *,
        name: Any = None,
        patch: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Merge *patch* into a record's payload and optionally rename it.

        The merged payload (not just the patch) is validated against the
        record's type, so a partial edit cannot leave required fields
        missing.  ``name=None`` keeps the current name.
        """
        op = "update"

        parsed = self._parse_id(op, record_id)
        if isinstance(parsed, ServiceResult):
            return parsed
        if patch is not None and not isinstance(patch, dict):
            return self._error(op, INVALID_INPUT, "Payload must be an object")

        try:
            existing = self._store.get_record(parsed)
        except SQLAlchemyError:
            return self._internal_failure(op)
        if existing is None:
            return self._not_found(op, parsed)

        patch_data, dropped = split_reserved(patch or {})
        warnings = _reserved_warnings(dropped)

        try:
            with self._store.transaction() as txn:
                with trace_span("validate"):
                    # Locked re-read: the merge starts from the committed state
                    # this write replaces, and concurrent patches serialize.
                    current = txn.records.get(parsed, for_update=True)
                    if current is None:
                        raise _Rejected(self._not_found(op, parsed))

                    checker = txn.reference_checker()
                    merged = merge_payload(current.payload, patch_data)
                    vr = self._store.rules.validate(current.type, merged, checker)
                    if not vr.valid:
                        raise _Rejected(self._validation_failed(op, vr.errors))

                    if name is not None and normalize_label(name) is None:
                        raise _Rejected(
                            self._validation_failed(op, ["Name must be a non-empty string"])
                        )

                with trace_span("persist"):
                    record = txn.records.update(parsed, name, patch_data)

                with trace_span("bump_version") as span:
                    version = txn.bump_version()
                    if span is not None:
                        span.annotate("version", version)
        except _Rejected as rejected:
            log.info("mutation.rejected", op=op, id=parsed, reason=str(rejected))
            return rejected.result
        except SQLAlchemyError:
            log.error("mutation.failed", op=op, id=parsed)
            return self._internal_failure(op)

        log.info("record.updated", id=record.id, type=record.type, version=version)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "message": "Record updated successfully",
                "version": version,
                "item": record.to_view(include_type=True),
            },
            warnings=warnings,
        )

    @traced
    def delete(self, record_id: Any) -> ServiceResult:
        """Remove a record and bump the version."""
        op = "delete"

        parsed = self._parse_id(op, record_id)
        if isinstance(parsed, ServiceResult):
            return parsed

        try:
            existing = self._store.get_record(parsed)
        except SQLAlchemyError:
            return self._internal_failure(op)
        if existing is None:
            return self._not_found(op, parsed)

        try:
            with self._store.transaction() as txn:
                with trace_span("persist"):
                    txn.records.delete(parsed)
                with trace_span("bump_version") as span:
                    version = txn.bump_version()
                    if span is not None:
                        span.annotate("version", version)
        except RecordNotFoundError:
            # Deleted concurrently between the existence check and the write.
            return self._not_found(op, parsed)
        except SQLAlchemyError:
            log.error("mutation.failed", op=op, id=parsed)
            return self._internal_failure(op)

        log.info("record.deleted", id=parsed, type=existing.type, version=version)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "message": "Record deleted successfully",
                "version": version,
                "id": parsed,
            },
        )
