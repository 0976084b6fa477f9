"""Command: inspect the per-type validation rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mantenedor.commands._base import MntCommand
from mantenedor.services.query import QueryService

if TYPE_CHECKING:
    from mantenedor.commands._context import AppContext


@click.command(
    cls=MntCommand,
    examples="""\
  mantenedor schema
  mantenedor schema INVOICE_CONCEPT
  mantenedor --json schema COST_TYPE""",
)
@click.argument("record_type", required=False)
@click.pass_obj
def schema(app: AppContext, record_type: str | None) -> None:
    """Show validation rules for every type, or for RECORD_TYPE."""
    app.emit(QueryService(app.store).get_schema(record_type))
