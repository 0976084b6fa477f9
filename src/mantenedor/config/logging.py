"""Logging setup: structlog over the stdlib ``logging`` tree.

Everything goes to stderr so stdout stays reserved for command output.
``mantenedor.*`` loggers (both structlog and plain ``logging``) share one
handler and one renderer:

- console renderer by default, colored only on a TTY
- one JSON object per line with ``--log-json``

SQL statements are routed through the same handler when ``[store] echo``
is on, instead of SQLAlchemy's own stdout echo.
"""

from __future__ import annotations

import logging
import sys

import structlog

APP_LOGGER = "mantenedor"
SQL_LOGGER = "sqlalchemy.engine"


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    echo_sql: bool = False,
) -> None:
    """(Re)configure structlog and the root handler.

    Safe to call repeatedly; the root logger keeps exactly one handler.

    Args:
        verbose: ``mantenedor.*`` at DEBUG instead of WARNING.
        log_json: JSON lines instead of console output.
        echo_sql: Emit every SQL statement at INFO.
    """
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger(APP_LOGGER).setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger(SQL_LOGGER).setLevel(logging.INFO if echo_sql else logging.WARNING)
