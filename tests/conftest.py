"""Shared pytest fixtures and test helpers for mantenedor tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from mantenedor.config.settings import MantenedorSettings
from mantenedor.domain.rules import FieldKind, FieldRule, RuleRegistry, RuleSet
from mantenedor.infrastructure.database.engine import init_database
from mantenedor.infrastructure.store import EntityStore
from mantenedor.services.telemetry import _current_span, disable_telemetry


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """The --verbose flag sets a ContextVar that would leak across tests."""
    yield
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Generator[None]:
    """CLI invocations install a handler on CliRunner's stream; drop it afterwards."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    yield
    root.handlers = original_handlers


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's MANTENEDOR_* environment out of the tests."""
    monkeypatch.delenv("MANTENEDOR_CONFIG", raising=False)
    monkeypatch.delenv("MANTENEDOR_ROOT", raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_engine(tmp_path: Path) -> Generator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def settings(tmp_path: Path) -> MantenedorSettings:
    """Settings rooted at a temp directory with no config file."""
    return MantenedorSettings.from_cli(root=tmp_path)


@pytest.fixture
def store(settings: MantenedorSettings) -> Generator[EntityStore]:
    """Store without any rule sets: every type accepts any payload."""
    s = EntityStore(settings)
    try:
        yield s
    finally:
        s.close()


def _rate_between_zero_and_one(value: Any) -> str | None:
    if isinstance(value, (int, float)) and not 0 <= value <= 1:
        return "Rate must be between 0 and 1"
    return None


def invoice_rules() -> RuleRegistry:
    """COST_TYPE / INVOICE_CONCEPT rule sets shared by the service tests."""
    return RuleRegistry(
        {
            "COST_TYPE": RuleSet(
                fields={
                    "code": FieldRule(kind=FieldKind.STRING, required=True),
                    "active": FieldRule(kind=FieldKind.BOOLEAN),
                }
            ),
            "INVOICE_CONCEPT": RuleSet(
                fields={
                    "costTypeId": FieldRule(
                        kind=FieldKind.NUMBER,
                        required=True,
                        reference_type="COST_TYPE",
                    ),
                    "rate": FieldRule(kind=FieldKind.NUMBER, predicate=_rate_between_zero_and_one),
                }
            ),
        }
    )


@pytest.fixture
def validated_store(settings: MantenedorSettings) -> Generator[EntityStore]:
    """Store with the invoice rule sets registered."""
    s = EntityStore(settings, rules=invoice_rules())
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def _isolated_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI creates an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_store")`` on command test
    classes.
    """
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def create_record(
    store: EntityStore,
    record_type: str,
    name: str,
    payload: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a record via MutationService, asserting success; returns the item."""
    from mantenedor.services.mutation import MutationService

    result = MutationService(store).create(record_type, name, payload)
    assert result.ok, result.error
    return result.data["item"]
