"""
Exception hierarchy for the project mover.

Fatal errors (``AuthError``, ``SourceUnavailable``, ``NamespaceNotFound``)
abort a run before anything is written to the destination cluster.
``ClientError`` describes a single failed API call and is recorded per
document by the applier instead of being raised to the caller.
"""

from __future__ import annotations

__all__ = [
    "MoverError",
    "AuthError",
    "SourceUnavailable",
    "NamespaceNotFound",
    "ClientError",
    "MigrationCancelled",
]


class MoverError(Exception):
    """Base exception for all project mover failures."""


class AuthError(MoverError):
    """Raised when a cluster rejects the endpoint or token."""


class SourceUnavailable(MoverError):
    """Raised when the source cluster cannot be reached or read."""


class NamespaceNotFound(MoverError):
    """Raised when the project to migrate does not exist on the source."""

    def __init__(self, namespace: str, endpoint: str = ""):
        self.namespace = namespace
        self.endpoint = endpoint
        where = f" on {endpoint}" if endpoint else ""
        super().__init__(f"Project '{namespace}' does not exist{where}")


class ClientError(MoverError):
    """A single cluster API call failed.

    ``status`` is the HTTP status code, or ``None`` when the request never
    got a response (connection refused, timeout, TLS failure).
    """

    def __init__(self, message: str, status: int | None = None, reason: str = ""):
        self.status = status
        self.reason = reason
        super().__init__(message)

    @property
    def already_exists(self) -> bool:
        """409 for a name that is taken, not an update conflict."""
        return self.status == 409 and self.reason in ("AlreadyExists", "")

    @property
    def not_found(self) -> bool:
        return self.status == 404


class MigrationCancelled(MoverError):
    """Raised when a cancel request arrives before the import has started."""
