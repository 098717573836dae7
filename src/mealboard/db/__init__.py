"""
Meal Board - Database access.

Provides the Supabase client and the acting-identity context.
"""

from mealboard.db.client import get_client
from mealboard.db.request_context import (
    ContextIdentityProvider,
    IdentityProvider,
    StaticIdentityProvider,
    clear_request_context,
    get_current_identity,
    set_request_context,
)

__all__ = [
    "get_client",
    "IdentityProvider",
    "ContextIdentityProvider",
    "StaticIdentityProvider",
    "set_request_context",
    "get_current_identity",
    "clear_request_context",
]
