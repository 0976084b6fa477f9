"""Repositories encapsulating SQL for the service layer."""

from mantenedor.infrastructure.repositories.records import (
    RecordNotFoundError,
    RecordRepository,
    RecordValidationError,
)

__all__ = ["RecordNotFoundError", "RecordRepository", "RecordValidationError"]
