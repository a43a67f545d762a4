"""Command line entry point.

    sharedir [OPTION]... PATH_TO_SHARE
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from sharedir import __version__
from sharedir.core.config import ConfigResolver, Settings
from sharedir.core.diagnostics import install_jsonl_sink
from sharedir.core.errors import ConfigError
from sharedir.core.logging import apply_logging_level, get_logger, set_json_output


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="sharedir",
        usage="%(prog)s [OPTION]... PATH_TO_SHARE",
        description="Share one directory tree over HTTP.",
    )
    ap.add_argument("path", nargs="?", help="Directory to share")
    ap.add_argument("--host", help="Host to listen to, empty for all (default 127.0.0.1)")
    ap.add_argument("-p", "--port", type=int, help="Port to listen to (default 8001)")
    ap.add_argument("--prefix", help="URL prefix at which the share is reachable (default /)")
    ap.add_argument(
        "--symlinks",
        action="store_true",
        default=None,
        help="Follow symlinks. WARNING: symlinks will by nature allow escaping the shared path",
    )
    ap.add_argument(
        "-k",
        "--skip-hidden",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Skip files prefixed with '.' (default on)",
    )
    ap.add_argument(
        "--ro",
        action="store_true",
        default=None,
        help="Read-only mode. Disable upload, rename, move, etc",
    )
    ap.add_argument("--json", action="store_true", default=None, help="Output logs in JSON")
    ap.add_argument(
        "--diagnostics",
        action="store_true",
        default=None,
        help="Append operation and request events to a JSONL file",
    )
    ap.add_argument("--diagnostics-file", help="Diagnostics JSONL path (implies --diagnostics)")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More output (-vv: debug)")
    ap.add_argument("-q", "--quiet", action="store_true", help="Warnings and errors only")
    ap.add_argument("--config", type=Path, help="Path to a YAML config file")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def cli_args_from(ns: argparse.Namespace) -> dict[str, Any]:
    """Nested config dict for ConfigResolver; unset flags are left out."""
    out: dict[str, Any] = {}

    def _put(section: str, key: str, value: Any) -> None:
        if value is not None:
            out.setdefault(section, {})[key] = value

    _put("server", "host", ns.host)
    _put("server", "port", ns.port)
    _put("server", "prefix", ns.prefix)
    _put("policy", "follow_symlinks", ns.symlinks)
    _put("policy", "skip_hidden", ns.skip_hidden)
    _put("policy", "read_only", ns.ro)
    _put("logging", "json", ns.json)
    _put("diagnostics", "enabled", True if ns.diagnostics_file else ns.diagnostics)
    _put("diagnostics", "path", ns.diagnostics_file)

    if ns.quiet:
        _put("logging", "level", "quiet")
    elif ns.verbose >= 2:
        _put("logging", "level", "debug")
    elif ns.verbose == 1:
        _put("logging", "level", "verbose")
    return out


def load_settings(argv: list[str] | None = None) -> Settings:
    ap = build_parser()
    ns = ap.parse_args(argv)
    resolver = ConfigResolver(cli_args=cli_args_from(ns), user_config_path=ns.config)
    if ns.path is None:
        try:
            resolver.resolve("root")
        except ConfigError:
            ap.print_usage(sys.stderr)
            raise SystemExit(1) from None
    return resolver.resolve_settings(root=ns.path)


def main(argv: list[str] | None = None) -> int:
    try:
        settings = load_settings(argv)
    except ConfigError as e:
        print(f"sharedir: {e}", file=sys.stderr)
        return 2

    apply_logging_level(settings.log_level)
    set_json_output(settings.log_json)
    if settings.diagnostics_enabled:
        install_jsonl_sink(settings.diagnostics_path)
        get_logger(__name__).verbose("diagnostics enabled", path=settings.diagnostics_path)
    if settings.follow_symlinks:
        get_logger(__name__).warning(
            "following symlinks; links inside the share may point outside it",
            root=settings.root,
        )

    from sharedir.web import ShareServer

    ShareServer(settings).run()
    return 0
