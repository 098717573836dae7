"""
Meal Board - Reservation Store Adapter.

Translates between ReservationRow and the meal_plan table, and issues
the range reads and per-row writes the board needs.

The Supabase client is synchronous; each call runs in a worker thread so
that the rows of a batch are in flight together and the event loop
stays free while waiting on the network.
"""

import asyncio
import logging
from datetime import date
from typing import Any, Iterable

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError

from mealboard.db.adapter import TableClient
from mealboard.errors import PartialBatchFailure, StoreError, StoreUnavailable
from mealboard.models import ReservationRow
from mealboard.schedule import Slot

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "meal_plan"

# Composite row identity; upserts replace on this key
ROW_KEY_COLUMNS = "user_name,meal_date,meal_type"

# Client-side failures that mean "the store did not answer"
STORE_FAILURES = (APIError, httpx.HTTPError)

RowKey = tuple[str, date, Slot]


class ReservationStore:
    """Reads and writes reservation rows in one Supabase table."""

    def __init__(self, client: TableClient | None = None, table: str = DEFAULT_TABLE):
        self._client = client
        self.table_name = table

    @classmethod
    def from_settings(cls) -> "ReservationStore":
        from mealboard.config import settings
        from mealboard.db.client import get_client

        return cls(get_client(), settings.mealboard_table)

    @property
    def client(self) -> TableClient:
        if self._client is None:
            from mealboard.db.client import get_client

            self._client = get_client()
        return self._client

    def _table(self) -> Any:
        return self.client.table(self.table_name)

    async def _execute(self, query: Any, what: str) -> Any:
        try:
            return await asyncio.to_thread(query.execute)
        except STORE_FAILURES as e:
            logger.warning(f"{what} failed: {e}")
            raise StoreUnavailable(f"{what} failed: {e}") from e

    # =========================================================================
    # Reads
    # =========================================================================

    async def load_range(self, start: date, end: date) -> list[ReservationRow]:
        """All rows with meal_date in [start, end]. No ordering guarantee."""
        query = (
            self._table()
            .select("*")
            .gte("meal_date", start.isoformat())
            .lte("meal_date", end.isoformat())
        )
        response = await self._execute(query, f"load {start}..{end}")

        rows = []
        for record in response.data or []:
            try:
                rows.append(ReservationRow.from_record(record))
            except (KeyError, ValidationError) as e:
                logger.warning(f"Skipping malformed meal_plan record {record!r}: {e}")
        logger.debug(f"Loaded {len(rows)} rows for {start}..{end}")
        return rows

    # =========================================================================
    # Writes
    # =========================================================================

    async def upsert(self, row: ReservationRow) -> None:
        """Insert or replace the row with the same (user_name, meal_date, meal_type)."""
        query = self._table().upsert(row.to_record(), on_conflict=ROW_KEY_COLUMNS)
        await self._execute(query, f"upsert {row.person_name} {row.meal_date} {row.slot.value}")
        logger.debug(f"Upserted {row.key} count={row.reserved_count}")

    async def upsert_batch(self, rows: Iterable[ReservationRow]) -> None:
        """
        Upsert rows concurrently and wait for all of them.

        Raises:
            PartialBatchFailure: some rows were written, some were not
            StoreUnavailable: no row was written
        """
        rows = list(rows)
        if not rows:
            return
        results = await asyncio.gather(*(self.upsert(row) for row in rows), return_exceptions=True)
        _raise_for_batch("upsert", rows, results)

    async def delete_by_key(self, person_name: str, meal_date: date, slot: Slot) -> None:
        """Remove at most one row. Absent rows are a no-op."""
        query = (
            self._table()
            .delete()
            .eq("user_name", person_name)
            .eq("meal_date", meal_date.isoformat())
            .eq("meal_type", slot.value)
        )
        await self._execute(query, f"delete {person_name} {meal_date} {slot.value}")
        logger.debug(f"Deleted {(person_name, meal_date, slot)}")

    async def delete_batch(self, keys: Iterable[RowKey]) -> None:
        """Delete rows by key concurrently; failures reported like upsert_batch."""
        keys = list(keys)
        if not keys:
            return
        results = await asyncio.gather(
            *(self.delete_by_key(*key) for key in keys), return_exceptions=True
        )
        _raise_for_batch("delete", keys, results)

    async def delete_by_person(self, person_name: str) -> int:
        """
        Remove every row for person_name, across all dates.

        Destructive and irreversible. Callers confirm with the user first;
        this method does not ask.
        """
        query = self._table().delete().eq("user_name", person_name)
        response = await self._execute(query, f"delete all rows of {person_name}")
        deleted = len(response.data or [])
        logger.info(f"Deleted {deleted} rows for {person_name}")
        return deleted


def _raise_for_batch(what: str, items: list, results: list) -> None:
    failed = []
    succeeded = []
    for item, result in zip(items, results):
        if isinstance(result, BaseException):
            if not isinstance(result, StoreError):
                raise result
            failed.append((item, result))
        else:
            succeeded.append(item)

    if not failed:
        return
    if not succeeded:
        raise StoreUnavailable(f"{what} batch failed for all {len(items)} rows") from failed[0][1]
    logger.warning(f"{what} batch: {len(failed)} of {len(items)} rows failed")
    raise PartialBatchFailure(failed, succeeded)
