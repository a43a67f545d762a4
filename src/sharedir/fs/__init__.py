"""Filesystem exposure layer: resolution, listing, archives, mutations."""

from .archive import ArchiveStreamer
from .content import ContentServer
from .listing import DirectoryLister, humanize
from .ops import MutationOps
from .paths import PathResolver, clean_rooted, resolve_symlinks_best_effort
from .types import Listing, ListingEntry, Located, RpcCall

__all__ = [
    "ArchiveStreamer",
    "ContentServer",
    "DirectoryLister",
    "Listing",
    "ListingEntry",
    "Located",
    "MutationOps",
    "PathResolver",
    "RpcCall",
    "clean_rooted",
    "humanize",
    "resolve_symlinks_best_effort",
]
