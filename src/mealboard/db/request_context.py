"""
Meal Board - Request Context for Identity.

Uses context variables to pass the acting user's identity through a
request or CLI command without threading it through every function.
"""

from contextvars import ContextVar
from typing import Optional, Protocol

from mealboard.config import settings

_identity: ContextVar[Optional[str]] = ContextVar("identity", default=None)


class IdentityProvider(Protocol):
    """Returns the acting user's stable identity, or None for open-edit mode."""

    def current_identity(self) -> str | None:
        ...


def set_request_context(identity: str | None = None):
    """
    Set the acting identity for the current request.

    Call this at the start of request handling (before any mutation).
    """
    if identity:
        _identity.set(identity)


def get_current_identity() -> str | None:
    """Get the current request's identity."""
    return _identity.get()


def clear_request_context():
    """Clear the request context (call at end of request)."""
    _identity.set(None)


class ContextIdentityProvider:
    """
    Default identity collaborator.

    Reads the context variable first and falls back to the configured
    MEALBOARD_IDENTITY. Both empty means open-edit mode.
    """

    def current_identity(self) -> str | None:
        identity = get_current_identity()
        if identity:
            return identity
        return settings.mealboard_identity or None


class StaticIdentityProvider:
    """Fixed identity, for scripts and tests."""

    def __init__(self, identity: str | None = None):
        self.identity = identity

    def current_identity(self) -> str | None:
        return self.identity
