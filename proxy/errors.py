"""Exception hierarchy for the proxy core."""
from __future__ import annotations

__all__ = ["ProxyError", "StorageError", "InstallError", "ListenerError"]


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class StorageError(ProxyError):
    """Raised when the routing document cannot be written."""


class InstallError(ProxyError):
    """Raised when the handler binary fails to (un)register the protocol."""

    def __init__(self, mode: str, reason: str):
        super().__init__(f"handler '{mode}' failed: {reason}")
        self.mode = mode
        self.reason = reason


class ListenerError(ProxyError):
    """Raised when the local channel cannot be bound."""
