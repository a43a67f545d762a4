from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from sharedir.core.config import Settings
from sharedir.core.errors import ForbiddenError
from sharedir.fs import ArchiveStreamer, ContentServer, DirectoryLister, MutationOps, PathResolver


@dataclass(frozen=True)
class Services:
    """Per-process components, all built from the same Settings."""

    settings: Settings
    resolver: PathResolver
    content: ContentServer
    lister: DirectoryLister
    archiver: ArchiveStreamer
    ops: MutationOps

    @classmethod
    def build(cls, settings: Settings) -> Services:
        resolver = PathResolver(settings)
        return cls(
            settings=settings,
            resolver=resolver,
            content=ContentServer(settings, resolver),
            lister=DirectoryLister(settings, resolver),
            archiver=ArchiveStreamer(settings, resolver),
            ops=MutationOps(settings, resolver),
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_writable(request: Request) -> None:
    """Single read-only gate for every mutating route."""
    if get_services(request).settings.read_only:
        raise ForbiddenError(f"{request.method} {request.scope.get('path', '')}")
