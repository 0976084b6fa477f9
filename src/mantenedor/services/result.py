"""ServiceResult and ServiceError — the universal service contract.

INVARIANT: All service-layer methods return ServiceResult.
The CLI and any outer adapter (an HTTP layer, for instance) consume this
type; failures are values, never exceptions escaping the service.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# Error taxonomy
INVALID_INPUT = "INVALID_INPUT"
NOT_FOUND = "NOT_FOUND"
VALIDATION_FAILED = "VALIDATION_FAILED"
INTERNAL_ERROR = "INTERNAL_ERROR"

# HTTP-style status per error code, for adapters that speak HTTP.
STATUS_BY_CODE: dict[str, int] = {
    INVALID_INPUT: 400,
    NOT_FOUND: 404,
    VALIDATION_FAILED: 400,
    INTERNAL_ERROR: 500,
}


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult.

    ``errors`` carries every field-level problem for VALIDATION_FAILED,
    in the order they were detected; ``message`` is their ``"; "`` join.
    """

    model_config = {"frozen": True}

    code: str
    message: str
    errors: list[str] = Field(default_factory=list)
    detail: dict[str, Any] = Field(default_factory=dict)

    @property
    def status(self) -> int:
        """HTTP-style status classification (500 for unknown codes)."""
        return STATUS_BY_CODE.get(self.code, 500)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"create"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing, counts, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
