"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mantenedor.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from mantenedor.services.result import ServiceResult

# Keys every record view carries; everything else is payload.
_FIXED_VIEW_KEYS = ("id", "type", "name", "createdAt", "updatedAt")


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    data = result.data
    if result.op == "get_version":
        return str(data.get("version", ""))
    if result.op == "list_types":
        return "\n".join(data.get("types", []))
    if result.op == "get_all":
        items = [i for group in data.get("itemsByType", {}).values() for i in group]
        return "\n".join(str(item["id"]) for item in items)
    if isinstance(data.get("items"), list):
        return "\n".join(str(item["id"]) for item in data["items"])
    if isinstance(data.get("item"), dict):
        return str(data["item"].get("id", ""))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="mnt.ok")
    op = Text(f"  {result.op}", style="mnt.op")
    console.print(label, op, sep="")


def _format_value(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="mnt.key")
    styles = {"id": "mnt.id", "type": "mnt.type", "name": "mnt.name", "version": "mnt.version"}
    v = Text(_format_value(value), style=styles.get(key, ""))
    console.print(k, v, sep="")


def _payload_fields(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k not in _FIXED_VIEW_KEYS}


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations")
    if annotations:
        line += "  (" + ", ".join(f"{ak}={av}" for ak, av in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _record_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    """Build a Rich Table for record views; payload keys become columns."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="mnt.id", no_wrap=True, justify="right")
    table.add_column("Name", style="mnt.name")

    payload_keys: list[str] = []
    for item in items:
        for key in _payload_fields(item):
            if key not in payload_keys:
                payload_keys.append(key)
    for key in payload_keys:
        table.add_column(key)

    if verbose:
        table.add_column("Updated", style="dim")

    for item in items:
        row = [str(item.get("id", "")), str(item.get("name", ""))]
        row.extend(_format_value(item[key]) if key in item else "" for key in payload_keys)
        if verbose:
            row.append(str(item.get("updatedAt", "")))
        table.add_row(*(Text(cell) for cell in row))

    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    label = Text("ERROR", style="mnt.error")
    op = Text(f"  {result.op}", style="mnt.op")
    dash = Text(" — ")

    if err is not None and err.errors:
        console.print(label, op, dash, err.code, sep="")
        for message in err.errors:
            console.print(Text(f"  - {message}"))
    else:
        console.print(label, op, dash, Text(err.message if err else "Unknown error"), sep="")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Renderers ─────────────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


def _render_version(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "version", result.data.get("version"))
    if verbose:
        _render_meta(console, result)


def _render_types(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    types = result.data.get("types", [])
    for record_type in types:
        console.print(Text(record_type, style="mnt.type"))
    console.print(f"\n{result.data.get('count', len(types))} types")
    if verbose:
        _render_meta(console, result)


def _render_all(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    groups: dict[str, list[dict[str, Any]]] = result.data.get("itemsByType", {})
    console.print(Text(f"version {result.data.get('version', 0)}", style="mnt.version"))
    for record_type, items in groups.items():
        console.print(f"\n[mnt.type]{escape(record_type)}[/mnt.type] ({len(items)})")
        console.print(_record_table(items, verbose=verbose))
    total = sum(len(items) for items in groups.values())
    console.print(f"\n{total} records in {len(groups)} types")
    if verbose:
        _render_meta(console, result)


def _render_by_type(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    console.print(Text(str(result.data.get("type", "")), style="mnt.type"))
    console.print(_record_table(items, verbose=verbose))
    console.print(f"\n{result.data.get('count', len(items))} records")
    if verbose:
        _render_meta(console, result)


def _render_single(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a single record as a panel of payload fields."""
    item: dict[str, Any] = result.data.get("item", {})
    lines = [f"type: {item.get('type', '')}"]
    lines.extend(f"{k}: {_format_value(v)}" for k, v in _payload_fields(item).items())
    lines.append(f"created: {item.get('createdAt', '')}")
    lines.append(f"updated: {item.get('updatedAt', '')}")
    title = f"{item.get('id', '?')} — {item.get('name', '')}"
    panel = Panel(Text("\n".join(lines)), title=escape(title), border_style="dim", expand=False)
    console.print(panel)
    if verbose:
        _render_meta(console, result)


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create/update/delete results."""
    _status_line(console, result)
    data = result.data
    item = data.get("item")
    if isinstance(item, dict):
        for key in ("id", "type", "name"):
            _field(console, key, item.get(key))
        for key, value in _payload_fields(item).items():
            _field(console, key, value)
    elif "id" in data:
        _field(console, "id", data["id"])
    _field(console, "version", data.get("version"))
    if verbose:
        _render_meta(console, result)


def _render_schema(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    data = result.data
    if "schemas" in data:
        schemas: dict[str, dict[str, Any]] = data["schemas"]
        if not schemas:
            console.print("No rule sets registered; every type accepts any payload.")
        for record_type, fields in schemas.items():
            console.print(f"\n[mnt.type]{escape(record_type)}[/mnt.type]")
            console.print(_rules_table(fields))
        return

    record_type = escape(str(data.get("type", "")))
    if not data.get("validated"):
        console.print(f"[mnt.type]{record_type}[/mnt.type]: not validated (any payload accepted)")
        return
    console.print(f"[mnt.type]{record_type}[/mnt.type]")
    console.print(_rules_table(data.get("fields", {})))


def _rules_table(fields: dict[str, dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Field", style="mnt.name")
    table.add_column("Kind")
    table.add_column("Required")
    table.add_column("Reference", style="mnt.type")
    table.add_column("Custom")
    for name, rule in fields.items():
        table.add_row(
            name,
            str(rule.get("kind", "")),
            "yes" if rule.get("required") else "",
            str(rule.get("reference") or ""),
            "yes" if rule.get("custom") else "",
        )
    return table


_Renderer = Callable[..., None]

_OP_RENDERERS: dict[str, _Renderer] = {
    "get_version": _render_version,
    "list_types": _render_types,
    "get_all": _render_all,
    "get_by_type": _render_by_type,
    "get_by_id": _render_single,
    "create": _render_mutation,
    "update": _render_mutation,
    "delete": _render_mutation,
    "get_schema": _render_schema,
}
