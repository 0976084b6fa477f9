"""Rich Console factory and theme for mantenedor output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

MNT_THEME = Theme(
    {
        "mnt.ok": "bold green",
        "mnt.error": "bold red",
        "mnt.warning": "bold yellow",
        "mnt.op": "bold cyan",
        "mnt.key": "dim",
        "mnt.id": "bold blue",
        "mnt.type": "magenta",
        "mnt.name": "bold",
        "mnt.version": "bold green",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=MNT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
