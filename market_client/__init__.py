"""Async client core for the marketplace REST service."""
from .client import MarketplaceClient
from .config import Settings, get_settings
from .errors import (
    ClientError,
    NetworkFailure,
    PersistenceFailure,
    ServerRejected,
    Unauthenticated,
    ValidationFailed,
)
from .logging_config import configure_logging
from .results import Result

__all__ = [
    "ClientError",
    "MarketplaceClient",
    "NetworkFailure",
    "PersistenceFailure",
    "Result",
    "ServerRejected",
    "Settings",
    "Unauthenticated",
    "ValidationFailed",
    "configure_logging",
    "get_settings",
]
