"""Centralized logging for sharedir.

Four verbosity levels:
- QUIET (0): Warnings + errors
- NORMAL (1): Info + warnings + errors
- VERBOSE (2): Detailed info
- DEBUG (3): Everything including internal state

Two output formats:
- console text: ``[info] message key=value ...`` (colored on a TTY)
- structured: one JSON object per line (``set_json_output(True)``)

Every emitted record is also published on the event bus as ``log.record``
so the diagnostics sink can persist it next to the operation envelopes.

Usage:
    from sharedir.core.logging import get_logger, set_verbosity

    logger = get_logger(__name__)
    set_verbosity(2)  # VERBOSE

    logger.info("started http server", host="127.0.0.1", port=8001)
    logger.error("zip failed", path="/srv/share/photos")
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any

LOG_RECORD_EVENT = "log.record"


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    message: str
    logger_name: str
    timestamp: str
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def plain(self) -> str:
        return f"[{self.level_name.lower()}] {self.message}"


class VerbosityLevel(IntEnum):
    """Verbosity levels for sharedir."""

    QUIET = 0  # Warnings + errors
    NORMAL = 1  # Info + warnings + errors
    VERBOSE = 2  # Detailed info
    DEBUG = 3  # Everything


LEVEL_NAMES: dict[str, VerbosityLevel] = {
    "quiet": VerbosityLevel.QUIET,
    "normal": VerbosityLevel.NORMAL,
    "verbose": VerbosityLevel.VERBOSE,
    "debug": VerbosityLevel.DEBUG,
}

_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL
_USE_COLORS: bool = True
_JSON_OUTPUT: bool = False


def set_verbosity(level: int | VerbosityLevel) -> None:
    """Set global verbosity level.

    Args:
        level: Verbosity level (0-3 or VerbosityLevel enum)
    """
    global _VERBOSITY

    if isinstance(level, int):
        level = VerbosityLevel(level)

    _VERBOSITY = level


def get_verbosity() -> VerbosityLevel:
    return _VERBOSITY


def apply_logging_level(level_name: str) -> None:
    """Apply a resolved ``logging.level`` name (quiet|normal|verbose|debug)."""
    set_verbosity(LEVEL_NAMES[level_name])


def set_colors(enabled: bool) -> None:
    global _USE_COLORS
    _USE_COLORS = enabled


def set_json_output(enabled: bool) -> None:
    """Switch console output between text lines and JSON lines."""
    global _JSON_OUTPUT
    _JSON_OUTPUT = enabled


def is_json_output() -> bool:
    return _JSON_OUTPUT


def _timestamp() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _format_fields(fields: dict[str, Any]) -> str:
    return " ".join(f"{k}={v!r}" for k, v in fields.items())


def _publish(record: LogRecord) -> None:
    # events imports this module for its own logger.
    from sharedir.core.events import get_event_bus

    get_event_bus().publish(LOG_RECORD_EVENT, asdict(record))


class SharedirLogger:
    """Logger with verbosity support and optional structured output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "VERBOSE": "\033[34m",  # Blue
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "RESET": "\033[0m",
    }

    def __init__(self, name: str):
        self.name = name

    def _should_log(self, level: VerbosityLevel) -> bool:
        return level <= _VERBOSITY

    def _render(self, record: LogRecord) -> str:
        if _JSON_OUTPUT:
            payload: dict[str, Any] = {
                "level": record.level_name.lower(),
                "time": record.timestamp,
                "logger": record.logger_name,
                "message": record.message,
            }
            for k, v in record.fields.items():
                payload.setdefault(k, v)
            return json.dumps(payload, ensure_ascii=False, default=str)

        text = record.message
        if record.fields:
            text = f"{text} {_format_fields(record.fields)}"
        tag = f"[{record.level_name.lower()}]"
        if _USE_COLORS and sys.stderr.isatty():
            color = self.COLORS.get(record.level_name, "")
            tag = f"{color}{tag}{self.COLORS['RESET']}"
        return f"{tag} {text}"

    def _log(self, level: VerbosityLevel, level_name: str, message: str, fields: dict) -> None:
        if not self._should_log(level):
            return

        record = LogRecord(
            level_name=level_name,
            message=message,
            logger_name=self.name,
            timestamp=_timestamp(),
            fields=dict(fields),
        )
        _publish(record)

        # Logs go to stderr so stdout stays free for the server banner.
        print(self._render(record), file=sys.stderr)

    def debug(self, message: str, **fields: Any) -> None:
        self._log(VerbosityLevel.DEBUG, "DEBUG", message, fields)

    def verbose(self, message: str, **fields: Any) -> None:
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(VerbosityLevel.NORMAL, "INFO", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(VerbosityLevel.QUIET, "WARNING", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        """Log error message (always shown)."""
        self._log(VerbosityLevel.QUIET, "ERROR", message, fields)


_LOGGERS: dict[str, SharedirLogger] = {}


def get_logger(name: str = __name__) -> SharedirLogger:
    """Get logger instance for module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    if name not in _LOGGERS:
        _LOGGERS[name] = SharedirLogger(name)

    return _LOGGERS[name]
