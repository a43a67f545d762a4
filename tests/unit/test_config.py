"""Unit tests for core.config module."""

from pathlib import Path

import pytest

from sharedir.core.config import ConfigResolver, Settings, canonical_root, normalize_prefix
from sharedir.core.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in (
        "SHAREDIR_ROOT",
        "SHAREDIR_SERVER_HOST",
        "SHAREDIR_SERVER_PORT",
        "SHAREDIR_SERVER_PREFIX",
        "SHAREDIR_POLICY_FOLLOW_SYMLINKS",
        "SHAREDIR_POLICY_SKIP_HIDDEN",
        "SHAREDIR_POLICY_READ_ONLY",
        "SHAREDIR_LOGGING_LEVEL",
        "SHAREDIR_LOGGING_JSON",
        "SHAREDIR_DIAGNOSTICS_ENABLED",
        "SHAREDIR_DIAGNOSTICS_PATH",
    ):
        monkeypatch.delenv(key, raising=False)


def _resolver(tmp_path: Path, **kwargs) -> ConfigResolver:
    kwargs.setdefault("user_config_path", tmp_path / "missing-user.yaml")
    kwargs.setdefault("system_config_path", tmp_path / "missing-system.yaml")
    return ConfigResolver(**kwargs)


class TestConfigResolver:
    """Tests for ConfigResolver."""

    def test_cli_priority(self, tmp_path):
        """Test that CLI args have highest priority."""
        user_config = tmp_path / "config.yaml"
        user_config.write_text("server:\n  port: 9001\n")

        resolver = _resolver(
            tmp_path,
            cli_args={"server": {"port": 9002}},
            user_config_path=user_config,
        )

        value, source = resolver.resolve("server.port")
        assert value == 9002
        assert source == "cli"

    def test_env_priority(self, tmp_path, monkeypatch):
        """Test that ENV overrides config files."""
        user_config = tmp_path / "config.yaml"
        user_config.write_text("server:\n  port: 9001\n")

        monkeypatch.setenv("SHAREDIR_SERVER_PORT", "9003")

        resolver = _resolver(tmp_path, user_config_path=user_config)

        value, source = resolver.resolve("server.port")
        assert value == "9003"
        assert source == "env"
        assert resolver.resolve_int("server.port") == 9003

    def test_user_config_priority(self, tmp_path):
        """Test that user config overrides system config."""
        user_config = tmp_path / "user.yaml"
        user_config.write_text("server:\n  prefix: /user/\n")

        system_config = tmp_path / "system.yaml"
        system_config.write_text("server:\n  prefix: /system/\n  host: 0.0.0.0\n")

        resolver = _resolver(
            tmp_path, user_config_path=user_config, system_config_path=system_config
        )

        assert resolver.resolve("server.prefix") == ("/user/", "user_config")
        assert resolver.resolve("server.host") == ("0.0.0.0", "system_config")

    def test_defaults(self, tmp_path):
        resolver = _resolver(tmp_path)

        assert resolver.resolve("server.port") == (8001, "default")
        assert resolver.resolve("policy.skip_hidden") == (True, "default")

    def test_unknown_key(self, tmp_path):
        with pytest.raises(ConfigError):
            _resolver(tmp_path).resolve("nope.missing")

    def test_invalid_yaml(self, tmp_path):
        user_config = tmp_path / "config.yaml"
        user_config.write_text("server: [unclosed\n")

        with pytest.raises(ConfigError, match="Failed to load config"):
            _resolver(tmp_path, user_config_path=user_config).resolve("server.port")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("true", True), ("Yes", True), ("off", False), ("0", False)],
    )
    def test_env_bools(self, tmp_path, monkeypatch, raw, expected):
        monkeypatch.setenv("SHAREDIR_POLICY_READ_ONLY", raw)

        assert _resolver(tmp_path).resolve_bool("policy.read_only") is expected

    def test_bad_bool(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SHAREDIR_POLICY_READ_ONLY", "maybe")

        with pytest.raises(ConfigError, match="must be a bool"):
            _resolver(tmp_path).resolve_bool("policy.read_only")

    def test_logging_level(self, tmp_path):
        resolver = _resolver(tmp_path, cli_args={"logging": {"level": "Verbose"}})
        assert resolver.resolve_logging_level() == "verbose"

        resolver = _resolver(tmp_path, cli_args={"logging": {"level": "loud"}})
        with pytest.raises(ConfigError, match="Invalid 'logging.level'"):
            resolver.resolve_logging_level()


class TestSettings:
    def test_resolve_settings(self, tmp_path):
        shared = tmp_path / "share"
        shared.mkdir()

        resolver = _resolver(
            tmp_path,
            cli_args={
                "server": {"port": 9000, "prefix": "files"},
                "policy": {"read_only": True},
            },
        )
        settings = resolver.resolve_settings(root=shared)

        assert settings.root == canonical_root(shared)
        assert settings.port == 9000
        assert settings.prefix == "/files/"
        assert settings.read_only is True
        assert settings.follow_symlinks is False
        assert settings.skip_hidden is True
        assert settings.log_level == "normal"

    def test_diagnostics_settings(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        settings = _resolver(tmp_path).resolve_settings(root=tmp_path)
        assert settings.diagnostics_enabled is False
        assert settings.diagnostics_path == str(
            tmp_path / "home" / ".local" / "state" / "sharedir" / "diagnostics.jsonl"
        )

        monkeypatch.setenv("SHAREDIR_DIAGNOSTICS_ENABLED", "yes")
        assert _resolver(tmp_path).resolve_settings(root=tmp_path).diagnostics_enabled is True

    def test_root_from_env(self, tmp_path, monkeypatch):
        shared = tmp_path / "share"
        shared.mkdir()
        monkeypatch.setenv("SHAREDIR_ROOT", str(shared))

        assert _resolver(tmp_path).resolve_settings().root == canonical_root(shared)

    def test_missing_root(self, tmp_path):
        with pytest.raises(ConfigError, match="No shared directory"):
            _resolver(tmp_path).resolve_settings()

    def test_root_must_be_directory(self, tmp_path):
        afile = tmp_path / "file.txt"
        afile.write_text("x")

        with pytest.raises(ConfigError, match="not a directory"):
            _resolver(tmp_path).resolve_settings(root=afile)

    def test_empty_host_listens_everywhere(self, tmp_path):
        resolver = _resolver(tmp_path, cli_args={"server": {"host": ""}})

        assert resolver.resolve_settings(root=tmp_path).host == "0.0.0.0"

    def test_port_out_of_range(self, tmp_path):
        resolver = _resolver(tmp_path, cli_args={"server": {"port": 70000}})

        with pytest.raises(ConfigError, match="server.port"):
            resolver.resolve_settings(root=tmp_path)

    def test_settings_are_frozen(self, tmp_path):
        settings = Settings(root=str(tmp_path))

        with pytest.raises(AttributeError):
            settings.read_only = True


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, "/"),
        ("", "/"),
        ("/", "/"),
        ("files", "/files/"),
        ("/files", "/files/"),
        ("/a//b/", "/a/b/"),
    ],
)
def test_normalize_prefix(raw, expected):
    assert normalize_prefix(raw) == expected
