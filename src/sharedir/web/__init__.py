"""FastAPI surface for sharedir."""

from .core import ShareServer

__all__ = ["ShareServer"]
