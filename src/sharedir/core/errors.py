"""Error hierarchy with operator-facing messages.

Clients never see these messages; the HTTP layer maps each class to a status
code and a fixed body. The text is meant for server logs.
"""

from __future__ import annotations


class SharedirError(Exception):
    """Base exception for all sharedir errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(SharedirError):
    """Configuration error."""

    pass


class FileError(SharedirError):
    """File operation error."""

    pass


class NotFoundError(FileError):
    """Path does not exist, or is hidden while hidden entries are skipped."""

    pass


class ForbiddenError(FileError):
    """Mutating request rejected because the server is read-only."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Read-only mode: '{operation}' rejected",
            "Restart without --ro to allow uploads and changes",
        )


class ArchiveError(FileError):
    """Archive walk failed for a specific entry."""

    pass


class RpcError(SharedirError):
    """Malformed RPC payload."""

    pass


class UnknownCallError(RpcError):
    """RPC call name is not one of the supported operations."""

    def __init__(self, call: str) -> None:
        super().__init__(
            f"Unknown rpc call '{call}'",
            "Supported calls: mkdirp, mv, rm",
        )
