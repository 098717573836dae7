"""
Database Adapter Protocol.

The reservation store only needs the PostgREST-style fluent builder:
table() returns a query builder supporting .select(), .upsert(),
.delete(), .eq(), .gte(), .lte() and .execute(). The Supabase client
satisfies this, and so does the in-memory fake used by the tests.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TableClient(Protocol):
    """
    Anything that can hand out a query builder for a table.

    The builder's .execute() must return an object exposing .data
    (a list of row dicts).
    """

    def table(self, name: str) -> Any:
        """Return a query builder for the given table."""
        ...
