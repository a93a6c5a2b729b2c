"""Logging setup.

Console output goes through rich; ``json`` format emits one object per line
for log collectors.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from rich.console import Console
from rich.logging import RichHandler

from dbt2lookml.types import LogFormat

_LEVEL_ALIASES = {"WARN": "WARNING"}


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(
    level: str = "INFO",
    fmt: LogFormat | str = LogFormat.RICH,
    console: Console | None = None,
) -> logging.Logger:
    """Configure the ``dbt2lookml`` logger.

    Args:
        level: Level name; ``WARN`` is accepted as an alias of ``WARNING``.
        fmt: ``rich`` for a RichHandler, ``json`` for structured lines.
        console: Console used by the rich handler (stderr by default).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger("dbt2lookml")
    logger.setLevel(_LEVEL_ALIASES.get(level.upper(), level.upper()))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler: logging.Handler
    if LogFormat(fmt) == LogFormat.JSON:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)
    logger.propagate = False
    return logger
