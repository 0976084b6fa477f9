"""Root CLI group for mantenedor with global flags and command registration."""

from __future__ import annotations

import click

from mantenedor import __version__
from mantenedor.commands import register_commands
from mantenedor.commands._base import MntGroup
from mantenedor.commands._context import AppContext
from mantenedor.config.settings import MantenedorSettings


@click.group(
    cls=MntGroup,
    invoke_without_command=True,
    examples="""\
  mantenedor create COST_TYPE "Fuel" --set code=FU
  mantenedor list --type COST_TYPE
  mantenedor --json list
  mantenedor -c ./mantenedor.toml schema""",
)
@click.version_option(version=__version__, prog_name="mantenedor")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """mantenedor — generic typed record store."""
    settings = MantenedorSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
