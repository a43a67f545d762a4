"""Mutating filesystem operations: mkdirp, move, remove, upload.

Every path argument goes through the PathResolver before the filesystem is
touched. Read-only mode is enforced by the HTTP layer before any of these
run; they do not look at the flag themselves.
"""

from __future__ import annotations

import os
import shutil
import stat
from collections.abc import Callable
from typing import BinaryIO

from sharedir.core.config import Settings
from sharedir.core.diagnostics import observe_operation
from sharedir.core.errors import UnknownCallError

from .archive import CHUNK_SIZE
from .paths import PathResolver
from .types import RpcCall


class MutationOps:
    def __init__(self, settings: Settings, resolver: PathResolver) -> None:
        self.settings = settings
        self.resolver = resolver
        self._calls: dict[str, Callable[[list[str]], None]] = {
            "mkdirp": lambda args: self.mkdirp(args[0]),
            "mv": lambda args: self.move(args[0], args[1]),
            "rm": lambda args: self.remove(args[0]),
        }

    def mkdirp(self, path: str) -> None:
        """Create a directory and its missing parents; existing directory is fine."""
        target = self.resolver.resolve(path)
        with observe_operation(component="fs", operation="fs.mkdirp", base={"path": path}):
            os.makedirs(target, exist_ok=True)

    def move(self, src: str, dst: str) -> None:
        """Rename ``src`` to ``dst``; no copy fallback across filesystems."""
        src_path = self.resolver.resolve(src)
        dst_path = self.resolver.resolve(dst)
        with observe_operation(component="fs", operation="fs.move", base={"src": src, "dst": dst}):
            os.rename(src_path, dst_path)

    def remove(self, path: str) -> None:
        """Remove a file, link or directory tree. A missing path is not an error."""
        target = self.resolver.resolve(path)
        with observe_operation(
            component="fs", operation="fs.remove", base={"path": path}
        ) as summary:
            try:
                st = os.lstat(target)
            except FileNotFoundError:
                summary["deleted"] = False
                return
            if stat.S_ISDIR(st.st_mode):
                shutil.rmtree(target)
            else:
                try:
                    os.remove(target)
                except FileNotFoundError:
                    pass
            summary["deleted"] = True

    def upload(self, path: str, src: BinaryIO) -> int:
        """Create or truncate ``path`` and copy ``src`` into it in chunks.

        The parent directory must already exist.
        """
        target = self.resolver.resolve(path)
        with observe_operation(
            component="fs", operation="fs.upload", base={"path": path}
        ) as summary:
            written = 0
            with open(target, "wb") as out:
                while True:
                    chunk = src.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    out.write(chunk)
                    written += len(chunk)
            summary["bytes"] = written
        return written

    def dispatch(self, rpc: RpcCall) -> None:
        """Run one RPC call; arguments are taken positionally, unchecked."""
        handler = self._calls.get(rpc.call)
        if handler is None:
            raise UnknownCallError(rpc.call)
        handler(rpc.args)
