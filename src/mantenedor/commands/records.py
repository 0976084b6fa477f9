"""Commands: read and write records, the type list, and the version."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import click

from mantenedor.commands._base import MntCommand
from mantenedor.services.mutation import MutationService
from mantenedor.services.query import QueryService

if TYPE_CHECKING:
    from mantenedor.commands._context import AppContext


def _parse_data(raw: str | None) -> dict[str, Any]:
    """Decode a ``--data`` JSON object."""
    if raw is None:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc.msg}", param_hint="--data") from exc
    if not isinstance(value, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--data")
    return value


def _parse_assignments(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Decode ``--set key=value`` pairs; values are JSON when they parse."""
    result: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--set")
        try:
            result[key] = json.loads(raw)
        except json.JSONDecodeError:
            result[key] = raw
    return result


def _collect_payload(data: str | None, assignments: tuple[str, ...]) -> dict[str, Any]:
    payload = _parse_data(data)
    payload.update(_parse_assignments(assignments))
    return payload


@click.command(
    cls=MntCommand,
    examples="""\
  mantenedor version
  mantenedor --quiet version""",
)
@click.pass_obj
def version(app: AppContext) -> None:
    """Show the global data version."""
    app.emit(QueryService(app.store).get_version())


@click.command(
    cls=MntCommand,
    examples="""\
  mantenedor types
  mantenedor --json types""",
)
@click.pass_obj
def types(app: AppContext) -> None:
    """List the record types that hold at least one record."""
    app.emit(QueryService(app.store).list_types())


@click.command(
    cls=MntCommand,
    name="list",
    examples="""\
  mantenedor list
  mantenedor list --type COST_TYPE
  mantenedor --json list""",
)
@click.option("--type", "record_type", default=None, help="Only records of this type.")
@click.pass_obj
def list_cmd(app: AppContext, record_type: str | None) -> None:
    """List all records grouped by type, or the records of one type."""
    svc = QueryService(app.store)
    if record_type is None:
        app.emit(svc.get_all())
    else:
        app.emit(svc.get_by_type(record_type))


@click.command(
    cls=MntCommand,
    examples="""\
  mantenedor get 12
  mantenedor --json get 12""",
)
@click.argument("record_id")
@click.pass_obj
def get(app: AppContext, record_id: str) -> None:
    """Show one record by id."""
    app.emit(QueryService(app.store).get_by_id(record_id))


@click.command(
    cls=MntCommand,
    examples="""\
  mantenedor create COST_TYPE "Fuel"
  mantenedor create COST_TYPE "Tolls" --set code=TL --set active=true
  mantenedor create INVOICE_CONCEPT "Diesel" --data '{"costTypeId": 1, "rate": 0.19}'""",
)
@click.argument("record_type")
@click.argument("name")
@click.option("--data", default=None, help="Payload as a JSON object.")
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="KEY=VALUE",
    help="Payload field (repeatable). VALUE is parsed as JSON, else kept as text.",
)
@click.pass_obj
def create(
    app: AppContext,
    record_type: str,
    name: str,
    data: str | None,
    assignments: tuple[str, ...],
) -> None:
    """Create a record of RECORD_TYPE named NAME."""
    payload = _collect_payload(data, assignments)
    app.emit(MutationService(app.store).create(record_type, name, payload))


@click.command(
    cls=MntCommand,
    examples="""\
  mantenedor update 12 --name "Diesel fuel"
  mantenedor update 12 --set rate=0.21
  mantenedor update 12 --data '{"notes": null}'""",
)
@click.argument("record_id")
@click.option("--name", default=None, help="New display name.")
@click.option("--data", default=None, help="Fields to merge, as a JSON object.")
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="KEY=VALUE",
    help="Field to merge (repeatable). VALUE is parsed as JSON, else kept as text.",
)
@click.pass_obj
def update(
    app: AppContext,
    record_id: str,
    name: str | None,
    data: str | None,
    assignments: tuple[str, ...],
) -> None:
    """Rename a record or merge fields into its payload."""
    patch = _collect_payload(data, assignments)
    if name is None and data is None and not assignments:
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)

    app.emit(MutationService(app.store).update(record_id, name=name, patch=patch))


@click.command(
    cls=MntCommand,
    examples="""\
  mantenedor delete 12""",
)
@click.argument("record_id")
@click.pass_obj
def delete(app: AppContext, record_id: str) -> None:
    """Delete a record by id."""
    app.emit(MutationService(app.store).delete(record_id))
