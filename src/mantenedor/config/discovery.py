"""Locating and reading ``mantenedor.toml``.

Lookup order: the ``MANTENEDOR_CONFIG`` env var, then a walk up from the
start directory (the way git finds ``.git/``).  An explicit ``--config``
path bypasses both; see :meth:`MantenedorSettings.from_cli`.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mantenedor.config.models import MantenedorConfig

CONFIG_FILENAME = "mantenedor.toml"
CONFIG_ENV_VAR = "MANTENEDOR_CONFIG"


class ConfigFileError(ValueError):
    """A config file exists but cannot be parsed or validated."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(message)
        self.path = path


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file that applies to *start* (default: cwd), or None.

    A set but dangling ``MANTENEDOR_CONFIG`` yields None rather than
    falling back to the walk-up.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidate = Path(env_path)
        return candidate if candidate.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for folder in (directory, *directory.parents):
        candidate = folder / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path* as TOML.

    Raises:
        ConfigFileError: The file is not valid TOML.
    """
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileError(path, f"Invalid TOML in {path}: {exc}") from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> MantenedorConfig:
    """Validated config from *path*, or from the file discovered from *cwd*.

    Code defaults when no file applies.

    Raises:
        ConfigFileError: The file is not valid TOML or does not match
            :class:`MantenedorConfig`.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return MantenedorConfig()
    try:
        return MantenedorConfig.model_validate(read_toml(path))
    except ValidationError as exc:
        raise ConfigFileError(path, f"Invalid config in {path}: {exc}") from exc
