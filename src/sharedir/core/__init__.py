"""sharedir core: settings, errors, logging and diagnostics."""

from sharedir.core.config import ConfigResolver, Settings, normalize_prefix
from sharedir.core.errors import (
    ArchiveError,
    ConfigError,
    FileError,
    ForbiddenError,
    NotFoundError,
    RpcError,
    SharedirError,
    UnknownCallError,
)
from sharedir.core.events import EventBus, get_event_bus
from sharedir.core.logging import VerbosityLevel, get_logger, set_json_output, set_verbosity

__all__ = [
    "ArchiveError",
    "ConfigError",
    "ConfigResolver",
    "EventBus",
    "FileError",
    "ForbiddenError",
    "NotFoundError",
    "RpcError",
    "Settings",
    "SharedirError",
    "UnknownCallError",
    "VerbosityLevel",
    "get_event_bus",
    "get_logger",
    "normalize_prefix",
    "set_json_output",
    "set_verbosity",
]
