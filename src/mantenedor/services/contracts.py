"""Typed payload contracts for service and adapter boundaries.

Record views are open objects (payload fields are spliced into the top
level), so these models pin only the fixed keys and allow the rest.
They exist so shape regressions (``items`` vs ``records``, a missing
``version``) fail fast in tests and in adapters that choose to validate.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RecordView(BaseModel):
    """One record as returned to callers: fixed fields plus payload."""

    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    createdAt: str  # noqa: N815
    updatedAt: str  # noqa: N815


class TypedRecordView(RecordView):
    """Record view that also carries its type (single-item responses)."""

    type: str


class VersionData(BaseModel):
    """Payload contract for ``QueryService.get_version``."""

    version: int = Field(ge=0)


class AllRecordsData(BaseModel):
    """Payload contract for ``QueryService.get_all``."""

    version: int = Field(ge=0)
    itemsByType: dict[str, list[RecordView]]  # noqa: N815


class RecordsByTypeData(BaseModel):
    """Payload contract for ``QueryService.get_by_type``."""

    type: str
    count: int
    items: list[RecordView]


class SingleRecordData(BaseModel):
    """Payload contract for ``QueryService.get_by_id``."""

    item: TypedRecordView


class MutationData(BaseModel):
    """Payload contract for ``MutationService.create`` and ``update``."""

    message: str
    version: int = Field(ge=1)
    item: TypedRecordView


class DeleteData(BaseModel):
    """Payload contract for ``MutationService.delete``."""

    message: str
    version: int = Field(ge=1)
    id: int


class TypesData(BaseModel):
    """Payload contract for ``QueryService.list_types``."""

    count: int
    types: list[str]
