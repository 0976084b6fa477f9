"""Subcommand modules for mantenedor.

Provides register_commands() which uses deferred imports to keep
``mantenedor --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register every standalone command on the root CLI group."""
    from mantenedor.commands.records import create, delete, get, list_cmd, types, update, version
    from mantenedor.commands.schema import schema

    cli.add_command(version)
    cli.add_command(types)
    cli.add_command(list_cmd)
    cli.add_command(get)
    cli.add_command(create)
    cli.add_command(update)
    cli.add_command(delete)
    cli.add_command(schema)
