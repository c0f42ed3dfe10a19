"""Structured logging setup for wbscalc entry points.

Library modules log through the standard library; the CLI and the import
pipeline log through structlog. Both end up in the same handlers, rendered
by structlog, so per-import context bound with
``structlog.contextvars.bound_contextvars`` (project_id, import_id) appears
on parser and builder lines as well.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_FILE = Path("logs/wbscalc.log")


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Log level name; defaults to LOG_LEVEL or INFO
        json_logs: Render JSON lines; defaults to JSON_LOGS=true
    """
    if json_logs is None:
        json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json_logs:
        # Production: JSON logs
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # Development: Pretty console logs
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )

    # Diagnostics go to stderr so CLI output on stdout stays clean
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if LOG_FILE.parent.exists():
        handlers.append(logging.FileHandler(LOG_FILE))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level_name)
