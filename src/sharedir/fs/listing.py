"""Directory listing."""

from __future__ import annotations

import os
import stat

from sharedir.core.config import Settings
from sharedir.core.diagnostics import observe_operation

from .paths import PathResolver
from .types import FOLDER_KIND, LINK_KIND, PARENT_ENTRY, Listing, ListingEntry, is_hidden

_UNITS = ("B", "k", "M", "G", "T", "P", "E", "Z", "Y")


def humanize(size: int) -> str:
    """Shorten a byte count: 1023 -> '1023.0B', 1536 -> '1.5k'."""
    value = float(size)
    for unit in _UNITS[:-1]:
        if value < 1024:
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}{_UNITS[-1]}"


def extension(name: str) -> str:
    """Extension after the last dot, without the dot ('' when there is none)."""
    _head, dot, tail = name.rpartition(".")
    if not dot:
        return ""
    return tail


def stat_entry(path: str, *, follow_symlinks: bool) -> os.stat_result:
    """Stat honoring the symlink policy (lstat unless links are followed)."""
    if follow_symlinks:
        return os.stat(path)
    return os.lstat(path)


class DirectoryLister:
    def __init__(self, settings: Settings, resolver: PathResolver) -> None:
        self.settings = settings
        self.resolver = resolver

    def title_for(self, resolved_dir: str) -> str:
        if self.resolver.is_root(resolved_dir):
            return "/"
        return "/" + self.resolver.relative(resolved_dir) + "/"

    def list(self, resolved_dir: str) -> Listing:
        """Enumerate the immediate children of ``resolved_dir``.

        Entries keep the order the OS returns them in. Hidden children are
        left out entirely when hidden entries are skipped. Symlinks that are
        not followed are listed with kind ``link`` and no link, since they
        cannot be fetched. A child that cannot be stat'ed fails the whole
        listing.
        """
        listing = Listing(
            title=self.title_for(resolved_dir),
            prefix=self.settings.prefix,
            read_only=self.settings.read_only,
        )
        if not self.resolver.is_root(resolved_dir):
            listing.folders.append(PARENT_ENTRY)

        base = {"path": self.resolver.relative(resolved_dir)}
        with observe_operation(component="fs", operation="fs.list", base=base) as summary:
            with os.scandir(resolved_dir) as it:
                for entry in it:
                    name = entry.name
                    if self.settings.skip_hidden and is_hidden(name):
                        continue
                    st = stat_entry(entry.path, follow_symlinks=self.settings.follow_symlinks)
                    if stat.S_ISLNK(st.st_mode):
                        listing.files.append(
                            ListingEntry(
                                name=name,
                                href=name,
                                size=humanize(st.st_size),
                                ext=LINK_KIND,
                                linked=False,
                            )
                        )
                    elif stat.S_ISDIR(st.st_mode):
                        listing.folders.append(
                            ListingEntry(name=name + "/", href=name, size="", ext=FOLDER_KIND)
                        )
                    else:
                        listing.files.append(
                            ListingEntry(
                                name=name,
                                href=name,
                                size=humanize(st.st_size),
                                ext=extension(name),
                            )
                        )
            children = [f for f in listing.folders if f is not PARENT_ENTRY]
            summary["items_count"] = len(children) + len(listing.files)
        return listing
