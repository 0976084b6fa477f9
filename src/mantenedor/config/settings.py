"""MantenedorSettings — CLI flags, env vars, and TOML in one frozen object.

Precedence, highest first:

1. keyword arguments (the CLI flags Click passes to :meth:`from_cli`)
2. ``MANTENEDOR_*`` environment variables (``__`` separates nesting,
   e.g. ``MANTENEDOR_STORE__DATABASE_URL``)
3. ``mantenedor.toml``
4. defaults baked into :mod:`mantenedor.config.models`
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from mantenedor.config.discovery import ConfigFileError, find_config, load_config
from mantenedor.config.models import SchemaConfig, StoreConfig

# The TOML file chosen by from_cli(), visible to settings_customise_sources()
# while the model is being built.
_active_toml: ContextVar[Path | None] = ContextVar("_active_toml", default=None)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Supplies the ``[store]`` and ``[schemas]`` tables of a config file.

    The file is validated as a :class:`MantenedorConfig`; only the keys it
    actually sets are handed on, so env vars can override single fields.
    """

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path is not None and toml_path.is_file():
            try:
                config = load_config(toml_path)
            except ConfigFileError as exc:
                raise click.ClickException(str(exc)) from exc
            self._data = config.model_dump(exclude_unset=True)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return dict(self._data)


class MantenedorSettings(BaseSettings):
    """Resolved settings for one CLI invocation or embedding application.

    Attributes:
        root: Directory that holds ``.mantenedor/``: the config file's
            directory, else the working directory.
        config_path: The config file that was read, if any.
        store: ``[store]`` table.
        schemas: ``[schemas.<TYPE>]`` tables, one rule set per type.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "MANTENEDOR_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    store: StoreConfig = Field(default_factory=StoreConfig)
    schemas: dict[str, SchemaConfig] = Field(default_factory=dict)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """kwargs, then env, then TOML; no dotenv or secrets directory."""
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _active_toml.get()),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> MantenedorSettings:
        """Build settings the way the CLI does.

        An explicit *config_path* that does not exist is ignored.  Without
        one, the config is discovered from *root* (or the cwd), and *root*
        defaults to the directory the config was found in.
        """
        if config_path:
            explicit = Path(config_path)
            toml_path = explicit if explicit.is_file() else None
        else:
            toml_path = find_config(root)

        if root is None:
            root = toml_path.parent if toml_path is not None else Path.cwd()

        token = _active_toml.set(toml_path)
        try:
            return cls(root=root, config_path=toml_path, **cli_flags)
        finally:
            _active_toml.reset(token)
