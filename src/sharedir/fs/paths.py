"""Path resolution and root confinement.

Client paths are untrusted. They are cleaned lexically as rooted paths before
any filesystem access, so no number of '..' segments can climb above the
synthetic '/' and, once joined onto the root, above the root itself.
"""

from __future__ import annotations

import os
import posixpath

from sharedir.core.config import Settings
from sharedir.core.logging import get_logger

_logger = get_logger(__name__)


def clean_rooted(path: str) -> str:
    """Lexically clean ``path`` as if it were rooted at '/'.

    Collapses '.', '..' and repeated separators. The result always starts
    with exactly one '/', and '..' at the top is dropped.

    Examples:
        "../../etc/passwd" -> "/etc/passwd"
        "//a/./b/../c" -> "/a/c"
        "" -> "/"
    """
    # posixpath keeps a leading '//' as-is, so collapse leading slashes first.
    return posixpath.normpath("/" + path.lstrip("/"))


def resolve_symlinks_best_effort(path: str) -> str:
    """Return the real path of ``path``, or ``path`` unchanged on failure.

    Failure to resolve (missing target, loop, permission) is not an error:
    callers then work with the unresolved path, which usually leads to a
    plain not-found further down.
    """
    try:
        return os.path.realpath(path, strict=True)
    except (OSError, ValueError):
        _logger.debug("symlink resolution failed; using unresolved path", path=path)
        return path


class PathResolver:
    """Map client paths to absolute paths under ``settings.root``."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.root = settings.root
        self._prefix = clean_rooted(settings.prefix)

    def strip_prefix(self, cleaned: str) -> str:
        """Remove the URL prefix from an already cleaned rooted path."""
        prefix = self._prefix
        if prefix == "/":
            return cleaned
        if cleaned == prefix:
            return "/"
        if cleaned.startswith(prefix + "/"):
            return cleaned[len(prefix) :]
        return cleaned

    def resolve(self, request_path: str) -> str:
        """Resolve a URL-decoded client path to an absolute filesystem path.

        Never raises. With symlink following disabled the result is always
        the root or a path below it.
        """
        rel = clean_rooted(self.strip_prefix(clean_rooted(request_path)))
        rel = rel.lstrip("/")
        resolved = os.path.join(self.root, *rel.split("/")) if rel else self.root
        if self.settings.follow_symlinks:
            resolved = resolve_symlinks_best_effort(resolved)
        return resolved

    def is_root(self, path: str) -> bool:
        return os.path.normpath(path) == self.root

    def relative(self, path: str) -> str:
        """Root-relative form of ``path`` with forward slashes ('.' for the root)."""
        rel = os.path.relpath(path, self.root)
        return rel.replace(os.sep, "/")
