"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, mantenedor.toml only contains
overrides.  A fresh store needs no config file at all.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

# --- mantenedor.toml sections ---


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    database_url: str | None = None
    busy_timeout: float = 30.0
    # Log SQL statements through the app logging handler.
    echo: bool = False


class FieldRuleConfig(BaseModel):
    """[schemas.<TYPE>.fields.<field>] section."""

    model_config = {"frozen": True, "extra": "forbid"}

    kind: Literal["string", "number", "boolean", "array", "object"]
    required: bool = False
    reference: str | None = None


class SchemaConfig(BaseModel):
    """[schemas.<TYPE>] section.

    Field order follows the TOML file and is the evaluation order.
    """

    model_config = {"frozen": True}

    fields: dict[str, FieldRuleConfig] = Field(default_factory=dict)

    def rule_dicts(self) -> dict[str, dict[str, Any]]:
        """Plain ``{field: {kind, required, reference}}`` mapping for the domain layer."""
        return {name: rule.model_dump() for name, rule in self.fields.items()}


class MantenedorConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    store: StoreConfig = Field(default_factory=StoreConfig)
    schemas: dict[str, SchemaConfig] = Field(default_factory=dict)
