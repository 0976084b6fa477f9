"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``.  Provides lazy EntityStore initialization and
centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mantenedor.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from mantenedor.config.settings import MantenedorSettings
    from mantenedor.infrastructure.store import EntityStore
    from mantenedor.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The store is created on first use so ``--help`` and ``--version``
    never touch the database.
    """

    def __init__(self, settings: MantenedorSettings) -> None:
        self.settings = settings
        self._store: EntityStore | None = None

        from mantenedor.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            echo_sql=settings.store.echo,
        )

        if settings.verbose:
            from mantenedor.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def store(self) -> EntityStore:
        """The store instance (created lazily on first access)."""
        if self._store is None:
            from mantenedor.infrastructure.database.counters import UnsupportedDialectError
            from mantenedor.infrastructure.store import EntityStore

            try:
                self._store = EntityStore(self.settings)
            except UnsupportedDialectError as exc:
                raise click.ClickException(str(exc)) from exc
        return self._store

    def close(self) -> None:
        """Release the store's connection pool if one was opened."""
        if self._store is not None:
            self._store.close()
            self._store = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout.  Warnings go to stderr so they stay
          out of piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
