"""Logging setup for sigguard.

Three output formats are supported on stderr:

- ``console``: ``2026-01-15 10:30:00 INFO  [sigguard.trust] message``
- ``json``: one JSON object per line, for log aggregation
- ``logfmt``: ``ts=... level=info msg="..." logger=sigguard.trust``

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed here, by the CLI.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

LOGGER_NAME = "sigguard"
LOG_FORMATS = ("console", "json", "logfmt")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JSONFormatter(logging.Formatter):
    """JSON log formatter.

    Example output:
        {"timestamp":"2026-01-15T10:30:00+00:00","level":"info","message":"Starting",...}
    """

    def __init__(self, *, sort_keys: bool = False, ensure_ascii: bool = False) -> None:
        super().__init__()
        self._sort_keys = sort_keys
        self._ensure_ascii = ensure_ascii

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(
            data,
            sort_keys=self._sort_keys,
            ensure_ascii=self._ensure_ascii,
            default=str,
        )


class LogfmtFormatter(logging.Formatter):
    """Logfmt formatter (``key=value`` pairs)."""

    def __init__(self, *, timestamp_key: str = "ts") -> None:
        super().__init__()
        self._timestamp_key = timestamp_key

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"{self._timestamp_key}={_timestamp(record).isoformat()}",
            f"level={record.levelname.lower()}",
            f'msg="{self._escape(record.getMessage())}"',
            f"logger={record.name}",
        ]
        if record.exc_info and record.exc_info[1] is not None:
            parts.append(f'error="{self._escape(str(record.exc_info[1]))}"')
        return " ".join(parts)

    def _escape(self, value: str) -> str:
        return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        *,
        color: bool = True,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
    ) -> None:
        super().__init__()
        self._color = color
        self._timestamp_format = timestamp_format

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname.ljust(5)
        if self._color:
            level = f"{self.COLORS.get(record.levelno, '')}{level}{self.RESET}"
        result = " ".join(
            [
                _timestamp(record).strftime(self._timestamp_format),
                level,
                f"[{record.name}]",
                record.getMessage(),
            ]
        )
        if record.exc_info:
            result = f"{result}\n{self.formatException(record.exc_info)}"
        return result


def create_formatter(format: str = "console", *, stream: TextIO | None = None) -> logging.Formatter:
    """Create the formatter for ``format``.

    Raises:
        ValueError: If ``format`` is not one of :data:`LOG_FORMATS`.
    """
    if format == "json":
        return JSONFormatter()
    if format == "logfmt":
        return LogfmtFormatter()
    if format == "console":
        target = stream or sys.stderr
        return ConsoleFormatter(color=hasattr(target, "isatty") and target.isatty())
    raise ValueError(f"Unknown log format: {format!r} (expected one of {', '.join(LOG_FORMATS)})")


def verbosity_to_level(verbose: int = 0, quiet: bool = False, default: str = "WARNING") -> str:
    """Map ``-v``/``-q`` flags to a level name.

    ``-q`` wins over ``-v``. Without flags the configured default is used.
    """
    if quiet:
        return "ERROR"
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return default


def configure_logging(
    level: str | int = "WARNING",
    format: str = "console",
    *,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install a single stderr handler on the ``sigguard`` logger.

    Calling it again replaces the handler installed by the previous call.

    Args:
        level: Level name or number.
        format: One of ``console``, ``json`` or ``logfmt``.
        stream: Output stream (defaults to ``sys.stderr``).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_sigguard_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(create_formatter(format, stream=stream))
    handler._sigguard_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
    return logger
