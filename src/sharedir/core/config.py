"""Configuration resolver with 4-level priority, and the immutable Settings.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (SHAREDIR_*)
3. Config files (user > system)
4. Defaults

``ConfigResolver.resolve_settings`` turns the resolved keys into one frozen
``Settings`` value. Settings are built once at startup and handed to every
component; nothing mutates them afterwards.
"""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from sharedir.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"
DEFAULT_DIAGNOSTICS_PATH = "~/.local/state/sharedir/diagnostics.jsonl"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read-only after startup."""

    root: str
    prefix: str = "/"
    host: str = "127.0.0.1"
    port: int = 8001
    follow_symlinks: bool = False
    skip_hidden: bool = True
    read_only: bool = False
    log_json: bool = False
    log_level: str = DEFAULT_LOGGING_LEVEL
    diagnostics_enabled: bool = False
    diagnostics_path: str = DEFAULT_DIAGNOSTICS_PATH


def normalize_prefix(prefix: str | None) -> str:
    """Return ``prefix`` with exactly one leading and one trailing slash.

    Examples:
        "" -> "/", "files" -> "/files/", "/a//b/" -> "/a/b/"
    """
    cleaned = posixpath.normpath("/" + (prefix or "").strip().lstrip("/"))
    if cleaned == "/":
        return "/"
    return cleaned + "/"


def canonical_root(path: str | Path) -> str:
    """Absolute, symlink-free form of the shared directory."""
    root = os.path.realpath(os.path.abspath(os.path.expanduser(str(path))))
    if not os.path.isdir(root):
        raise ConfigError(
            f"Shared path is not a directory: {root}",
            "Pass an existing directory as PATH",
        )
    return root


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(cli_args={"server": {"port": 9000}})

        port, source = resolver.resolve("server.port")
        # port = 9000, source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/sharedir/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/sharedir/config.yaml")
        self.defaults = defaults or self._default_config()

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'server.port')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._get_nested(self.cli_args, key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = self._get_nested(self._get_system_config(), key)
        if value is not None:
            return value, "system_config"

        value = self._get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_bool(self, key: str) -> bool:
        value, src = self.resolve(key)
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in _TRUE_VALUES:
            return True
        if s in _FALSE_VALUES:
            return False
        raise ConfigError(f"Config key '{key}' must be a bool, got {value!r} (source: {src})")

    def resolve_int(self, key: str) -> int:
        value, src = self.resolve(key)
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be an int (source: {src})")
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        raise ConfigError(f"Config key '{key}' must be an int, got {value!r} (source: {src})")

    def resolve_str(self, key: str) -> str:
        value, src = self.resolve(key)
        if not isinstance(value, str):
            raise ConfigError(
                f"Config key '{key}' must be a string, got {type(value).__name__} (source: {src})"
            )
        return value

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level (quiet|normal|verbose|debug)."""
        try:
            value, _src = self.resolve("logging.level")
        except ConfigError:
            return DEFAULT_LOGGING_LEVEL

        if not isinstance(value, str):
            raise ConfigError(
                f"Config key 'logging.level' must be a string, got {type(value).__name__}"
            )
        norm = value.strip().lower()
        if norm not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid 'logging.level': {value!r}. Allowed values: {allowed}")
        return norm

    def resolve_settings(self, root: str | Path | None = None) -> Settings:
        """Build the frozen Settings value.

        ``root`` overrides the ``root`` key; one of them must be present.
        """
        if root is None:
            try:
                root = self.resolve_str("root")
            except ConfigError:
                raise ConfigError(
                    "No shared directory configured",
                    "Pass PATH on the command line or set SHAREDIR_ROOT",
                ) from None

        port = self.resolve_int("server.port")
        if not 0 <= port <= 65535:
            raise ConfigError(f"Invalid 'server.port': {port}")

        return Settings(
            root=canonical_root(root),
            prefix=normalize_prefix(self.resolve_str("server.prefix")),
            host=self.resolve_str("server.host") or "0.0.0.0",
            port=port,
            follow_symlinks=self.resolve_bool("policy.follow_symlinks"),
            skip_hidden=self.resolve_bool("policy.skip_hidden"),
            read_only=self.resolve_bool("policy.read_only"),
            log_json=self.resolve_bool("logging.json"),
            log_level=self.resolve_logging_level(),
            diagnostics_enabled=self.resolve_bool("diagnostics.enabled"),
            diagnostics_path=os.path.expanduser(self.resolve_str("diagnostics.path")),
        )

    def _from_env(self, key: str) -> Any | None:
        """Environment variable format: SHAREDIR_SERVER_PORT for 'server.port'."""
        env_key = f"SHAREDIR_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _get_user_config(self) -> dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'server': {'port': 8001}}
            _get_nested(data, 'server.port') -> 8001
        """
        current: Any = data

        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None

        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        return {
            "server": {
                "host": "127.0.0.1",
                "port": 8001,
                "prefix": "/",
            },
            "policy": {
                "follow_symlinks": False,
                "skip_hidden": True,
                "read_only": False,
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "json": False,
            },
            "diagnostics": {
                "enabled": False,
                "path": DEFAULT_DIAGNOSTICS_PATH,
            },
        }
