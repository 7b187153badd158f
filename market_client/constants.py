"""Project-wide constant values."""
from __future__ import annotations

# Persisted session keys; always written and cleared together
AUTH_TOKEN_KEY = "authToken"
AUTH_USER_KEY = "authUser"
AUTH_SKIPPED_KEY = "authSkipped"
SESSION_KEYS = (AUTH_TOKEN_KEY, AUTH_USER_KEY, AUTH_SKIPPED_KEY)

PLACEHOLDER_ID_PREFIX = "local-"

UNAUTHENTICATED_DETAIL = "Sign in required"
FORBIDDEN_DETAIL = "You do not have permission to perform this action"
NETWORK_FAILURE_DETAIL = "Network error, check your connection and try again"
SERVER_ERROR_DETAIL = "Server error"

__all__ = [
    "AUTH_TOKEN_KEY",
    "AUTH_USER_KEY",
    "AUTH_SKIPPED_KEY",
    "SESSION_KEYS",
    "PLACEHOLDER_ID_PREFIX",
    "UNAUTHENTICATED_DETAIL",
    "FORBIDDEN_DETAIL",
    "NETWORK_FAILURE_DETAIL",
    "SERVER_ERROR_DETAIL",
]
