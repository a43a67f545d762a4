"""Decide how a requested path is served: file bytes or directory listing."""

from __future__ import annotations

import os
import stat

from sharedir.core.config import Settings
from sharedir.core.errors import NotFoundError

from .listing import stat_entry
from .paths import PathResolver
from .types import Located, is_hidden


class ContentServer:
    def __init__(self, settings: Settings, resolver: PathResolver) -> None:
        self.settings = settings
        self.resolver = resolver

    def locate(self, request_path: str) -> Located:
        """Resolve and stat ``request_path``.

        Hidden entries are reported as missing, not as forbidden. The root
        itself is never considered hidden. When links are not followed, a
        link is never served either.

        Raises:
            NotFoundError: missing, hidden, or an unfollowed symlink.
            OSError: any other stat failure.
        """
        path = self.resolver.resolve(request_path)
        try:
            st = stat_entry(path, follow_symlinks=self.settings.follow_symlinks)
        except FileNotFoundError:
            raise NotFoundError(f"Not found: {request_path}") from None

        if (
            self.settings.skip_hidden
            and not self.resolver.is_root(path)
            and is_hidden(os.path.basename(path))
        ):
            raise NotFoundError(f"Hidden: {request_path}")

        if stat.S_ISLNK(st.st_mode):
            raise NotFoundError(f"Symlink not followed: {request_path}")

        return Located(path=path, is_dir=stat.S_ISDIR(st.st_mode), stat=st)
