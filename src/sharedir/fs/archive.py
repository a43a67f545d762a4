"""Streaming zip archives of a directory subtree.

The archive is produced while the tree is walked and handed out chunk by
chunk, so memory use does not depend on the size of the tree. Entries are
stored without compression.

Once the first chunk has left, a failure can no longer become an HTTP error:
the generator raises, the response stops, and the client is left with a
truncated archive.
"""

from __future__ import annotations

import os
import stat
import time
import zipfile
from collections.abc import Iterator
from typing import BinaryIO

from sharedir.core.config import Settings
from sharedir.core.diagnostics import observe_operation
from sharedir.core.errors import ArchiveError, NotFoundError
from sharedir.core.logging import get_logger

from .listing import stat_entry
from .paths import PathResolver
from .types import is_hidden

_logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024

# Zip timestamps cannot represent dates before 1980 or after 2107.
_MIN_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_MAX_DATE_TIME = (2107, 12, 31, 23, 59, 58)


class _ChunkSink:
    """Write-only target for ZipFile; collects bytes until drained.

    It has no ``tell``/``seek``, which puts ZipFile into streaming mode
    (sizes and CRCs go into data descriptors after each entry).
    """

    def __init__(self) -> None:
        self._chunks: list[bytes] = []

    def write(self, data: bytes) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def _date_time(mtime: float) -> tuple[int, int, int, int, int, int]:
    dt = time.localtime(mtime)[:6]
    return max(_MIN_DATE_TIME, min(_MAX_DATE_TIME, dt))


def _zipinfo(arcname: str, st: os.stat_result) -> zipfile.ZipInfo:
    zinfo = zipfile.ZipInfo(arcname, date_time=_date_time(st.st_mtime))
    zinfo.compress_type = zipfile.ZIP_STORED
    zinfo.external_attr = (st.st_mode & 0xFFFF) << 16
    return zinfo


class ArchiveStreamer:
    """Zip a subtree of the shared root on the fly."""

    def __init__(self, settings: Settings, resolver: PathResolver) -> None:
        self.settings = settings
        self.resolver = resolver

    def check(self, top: str) -> os.stat_result:
        """Stat the archive root before any byte is produced.

        Raises:
            NotFoundError: the path is missing, or hidden while hidden
                entries are skipped.
        """
        try:
            st = stat_entry(top, follow_symlinks=self.settings.follow_symlinks)
        except FileNotFoundError:
            raise NotFoundError(f"Not found: {self.resolver.relative(top)}") from None
        if (
            self.settings.skip_hidden
            and not self.resolver.is_root(top)
            and is_hidden(os.path.basename(top))
        ):
            raise NotFoundError(f"Hidden: {self.resolver.relative(top)}")
        return st

    def _open_file(self, path: str) -> BinaryIO:
        return open(path, "rb")

    def _stat_child(self, path: str) -> tuple[os.stat_result, bool]:
        """Return (stat, is_link) for a walked entry.

        With symlink following enabled a link is resolved and its target
        stat'ed; a dangling or looping link aborts the walk.
        """
        lst = os.lstat(path)
        if not stat.S_ISLNK(lst.st_mode):
            return lst, False
        if not self.settings.follow_symlinks:
            return lst, True
        try:
            target = os.path.realpath(path, strict=True)
            return os.stat(target), False
        except OSError as e:
            raise ArchiveError(f"Cannot resolve symlink: {path}: {e}") from e

    def _walk(
        self, path: str, st: os.stat_result, is_link: bool, ancestors: frozenset
    ) -> Iterator[tuple[str, os.stat_result, bool]]:
        yield path, st, is_link
        if is_link or not stat.S_ISDIR(st.st_mode):
            return

        key = (st.st_dev, st.st_ino)
        if key in ancestors:
            raise ArchiveError(f"Symlink loop at: {path}")
        ancestors = ancestors | {key}

        for name in sorted(os.listdir(path)):
            if self.settings.skip_hidden and is_hidden(name):
                continue
            child = os.path.join(path, name)
            child_st, child_link = self._stat_child(child)
            yield from self._walk(child, child_st, child_link, ancestors)

    def stream(self, top: str) -> Iterator[bytes]:
        """Yield the zip archive of ``top`` chunk by chunk.

        Arc names are relative to the parent of ``top``, so the archive holds
        a single top-level folder named like ``top``.
        """
        st = self.check(top)
        is_link = stat.S_ISLNK(st.st_mode)
        parent = os.path.dirname(top)
        sink = _ChunkSink()

        base = {"path": self.resolver.relative(top)}
        with observe_operation(component="fs", operation="fs.archive", base=base) as summary:
            summary.update({"files_count": 0, "dirs_count": 0, "bytes": 0})
            with zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_STORED) as zf:
                for path, entry_st, entry_link in self._walk(top, st, is_link, frozenset()):
                    arcname = os.path.relpath(path, parent).replace(os.sep, "/")

                    if entry_link:
                        zinfo = _zipinfo(arcname, entry_st)
                        zf.writestr(zinfo, os.fsencode(os.readlink(path)))
                        summary["files_count"] += 1
                    elif stat.S_ISDIR(entry_st.st_mode):
                        zinfo = _zipinfo(arcname + "/", entry_st)
                        zinfo.external_attr |= 0x10  # MS-DOS directory flag
                        zinfo.file_size = 0
                        zinfo.compress_size = 0
                        zinfo.CRC = 0
                        zf.mkdir(zinfo)
                        summary["dirs_count"] += 1
                    else:
                        zinfo = _zipinfo(arcname, entry_st)
                        zinfo.file_size = entry_st.st_size
                        with self._open_file(path) as src, zf.open(zinfo, mode="w") as dst:
                            while True:
                                buf = src.read(CHUNK_SIZE)
                                if not buf:
                                    break
                                dst.write(buf)
                                summary["bytes"] += len(buf)
                                chunk = sink.drain()
                                if chunk:
                                    yield chunk
                        summary["files_count"] += 1

                    chunk = sink.drain()
                    if chunk:
                        yield chunk

            tail = sink.drain()
            if tail:
                yield tail
