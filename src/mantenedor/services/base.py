"""BaseService — abstract foundation for all mantenedor services.

Every service receives an :class:`EntityStore` at construction time. The
store provides the rule registry, read helpers, and transactional access
to records and the version counter.  Services own their transaction
boundaries via ``self._store.transaction()``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from mantenedor.domain.records import coerce_record_id
from mantenedor.services.result import (
    INTERNAL_ERROR,
    INVALID_INPUT,
    NOT_FOUND,
    VALIDATION_FAILED,
    ServiceError,
    ServiceResult,
)

if TYPE_CHECKING:
    from mantenedor.infrastructure.store import EntityStore

logger = logging.getLogger(__name__)


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class MutationService(BaseService):
            def create(self, record_type: str, ...) -> ServiceResult:
                with self._store.transaction() as txn:
                    ...
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Result builders
    # ------------------------------------------------------------------

    @staticmethod
    def _error(op: str, code: str, message: str, **detail: Any) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )

    @staticmethod
    def _validation_failed(op: str, errors: list[str]) -> ServiceResult:
        return ServiceResult(
            ok=False,
            op=op,
            error=ServiceError(
                code=VALIDATION_FAILED,
                message="; ".join(errors),
                errors=list(errors),
            ),
        )

    @staticmethod
    def _not_found(op: str, record_id: Any) -> ServiceResult:
        return BaseService._error(
            op, NOT_FOUND, f"No record found with id: {record_id}", id=record_id
        )

    @staticmethod
    def _internal_failure(op: str) -> ServiceResult:
        """Log the active exception and return a generic INTERNAL_ERROR.

        Must be called from an ``except`` block.
        """
        logger.exception("%s failed", op)
        return BaseService._error(op, INTERNAL_ERROR, "Internal server error")

    @staticmethod
    def _parse_id(op: str, record_id: Any) -> int | ServiceResult:
        """Coerce *record_id* to int, or return an INVALID_INPUT result."""
        parsed = coerce_record_id(record_id)
        if parsed is None:
            return BaseService._error(
                op, INVALID_INPUT, f"Record id must be an integer, got {record_id!r}"
            )
        return parsed
