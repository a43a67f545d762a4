"""Types for the filesystem layer."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from sharedir.core.errors import RpcError

HIDDEN_MARKER = "."
FOLDER_KIND = "folder"
LINK_KIND = "link"


def is_hidden(name: str) -> bool:
    return name.startswith(HIDDEN_MARKER)


@dataclass(frozen=True)
class ListingEntry:
    """One row of a directory listing.

    ``name`` is the display text (folders end with '/'), ``href`` the link
    target relative to the listed directory, ``size`` a human-readable size
    (empty for folders) and ``ext`` the file extension or ``folder``.
    ``linked`` is false for entries that cannot be fetched, such as symlinks
    while links are not followed; they are shown but not linked.
    """

    name: str
    href: str
    size: str
    ext: str
    linked: bool = True


PARENT_ENTRY = ListingEntry(name="../", href="../", size="", ext=FOLDER_KIND)


@dataclass
class Listing:
    """Data handed to the listing template."""

    title: str
    prefix: str
    read_only: bool
    folders: list[ListingEntry] = field(default_factory=list)
    files: list[ListingEntry] = field(default_factory=list)


@dataclass(frozen=True)
class Located:
    """A resolved path that exists and may be served."""

    path: str
    is_dir: bool
    stat: os.stat_result


@dataclass(frozen=True)
class RpcCall:
    call: str
    args: list[str]

    @classmethod
    def from_payload(cls, payload: Any) -> RpcCall:
        """Build from the decoded JSON body ``{"call": str, "args": [str, ...]}``.

        Only the payload shape is checked; argument count is left to the call.
        """
        if not isinstance(payload, dict):
            raise RpcError("RPC body must be a JSON object")
        call = payload.get("call")
        args = payload.get("args", [])
        if not isinstance(call, str):
            raise RpcError("RPC 'call' must be a string")
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise RpcError("RPC 'args' must be a list of strings")
        return cls(call=call, args=list(args))
