"""Client-observed error taxonomy."""
from __future__ import annotations

from .constants import NETWORK_FAILURE_DETAIL, UNAUTHENTICATED_DETAIL


class ClientError(RuntimeError):
    """Base class for every failure surfaced to callers of the client core."""

    kind = "client_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class Unauthenticated(ClientError):
    """Raised when an operation needs a session (or a role) the client does not hold."""

    kind = "unauthenticated"

    def __init__(self, message: str = UNAUTHENTICATED_DETAIL) -> None:
        super().__init__(message)


class ValidationFailed(ClientError):
    """Raised for invalid input caught before any request is issued."""

    kind = "validation_failed"

    def __init__(self, message: str, *, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class ServerRejected(ClientError):
    """Raised for non-2xx responses and for 2xx payloads that cannot be parsed."""

    kind = "server_rejected"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkFailure(ClientError):
    """Raised when a request never completed at the transport level."""

    kind = "network_failure"

    def __init__(self, message: str = NETWORK_FAILURE_DETAIL) -> None:
        super().__init__(message)


class PersistenceFailure(ClientError):
    """Raised by storage backends; the session store absorbs it."""

    kind = "persistence_failure"


__all__ = [
    "ClientError",
    "Unauthenticated",
    "ValidationFailed",
    "ServerRejected",
    "NetworkFailure",
    "PersistenceFailure",
]
