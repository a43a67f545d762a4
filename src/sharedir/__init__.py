"""sharedir - share one directory tree over HTTP."""

__version__ = "1.0.0"
