"""
Meal Board - Reconciliation Engine.

Turns the raw rows of one week into the board's roster:

1. Load every row in the week window
2. Group rows by person into (date, slot) reservation maps
3. Infer each person's headcount from their stored counts
4. If nobody has a row this week, carry the last non-empty roster over
   with nothing reserved yet
5. Publish a WeekBoard; totals are computed from it on demand
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from mealboard.models import PersonReservation, ReservationRow, WeekBoard
from mealboard.schedule import ScheduleCalendar, WeekWindow
from mealboard.store import ReservationStore

logger = logging.getLogger(__name__)


def infer_headcount(counts: Iterable[int]) -> int:
    """Mean of the stored counts, halves rounded up, never below 1."""
    counts = list(counts)
    if not counts:
        return 1
    mean = sum(counts) / len(counts)
    return max(1, math.floor(mean + 0.5))


def group_rows(rows: Iterable[ReservationRow], window: WeekWindow) -> list[PersonReservation]:
    """
    Partition rows into one PersonReservation per name, sorted by name.

    Rows outside the window or without a name are ignored. The result
    does not depend on the order rows arrive in.
    """
    by_name: dict[str, list[ReservationRow]] = {}
    for row in rows:
        if not row.person_name or not window.contains(row.meal_date):
            continue
        by_name.setdefault(row.person_name, []).append(row)

    people = []
    for name in sorted(by_name):
        person_rows = sorted(
            by_name[name],
            key=lambda r: (r.meal_date, r.slot.name, r.reserved_count, r.owner_identity or ""),
        )
        reservations = {(r.meal_date, r.slot): r.reserved_count for r in person_rows}
        owner = next((r.owner_identity for r in person_rows if r.owner_identity), None)
        people.append(
            PersonReservation(
                name=name,
                headcount=infer_headcount(reservations.values()),
                owner_identity=owner,
                reservations=reservations,
            )
        )
    return people


@dataclass(frozen=True)
class RosterEntry:
    headcount: int
    owner_identity: str | None = None


class RosterCache:
    """
    Names and headcounts from the most recent non-empty week.

    Replaced wholesale by every non-empty load; read when a week comes
    back with no rows at all.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RosterEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def replace(self, people: Iterable[PersonReservation]) -> None:
        self._entries = {
            p.name: RosterEntry(p.headcount, p.owner_identity)
            for p in people
            if not p.is_placeholder
        }

    def get(self, name: str) -> RosterEntry | None:
        return self._entries.get(name)

    def roster(self) -> list[PersonReservation]:
        """Fresh entries with empty reservations, sorted by name."""
        return [
            PersonReservation(name=name, headcount=entry.headcount, owner_identity=entry.owner_identity)
            for name, entry in sorted(self._entries.items())
        ]


class ReconciliationEngine:
    """Loads weeks from the store and publishes WeekBoards."""

    def __init__(
        self,
        store: ReservationStore,
        calendar: ScheduleCalendar | None = None,
        roster: RosterCache | None = None,
    ):
        self.store = store
        self.calendar = calendar or ScheduleCalendar()
        self.roster = roster if roster is not None else RosterCache()

    async def load_week(self, anchor: date | datetime) -> WeekBoard:
        """
        Load the week containing anchor.

        Store failures propagate; the carry-over roster is only touched
        after a successful load.
        """
        window = self.calendar.week_window(anchor)
        rows = await self.store.load_range(window.start, window.end)
        people = group_rows(rows, window)

        if people:
            self.roster.replace(people)
            logger.info(f"Loaded {window}: {len(people)} people, {len(rows)} rows")
            return WeekBoard(window=window, people=people)

        carried = self.roster.roster()
        if carried:
            logger.info(f"Loaded {window}: no rows, carried over {len(carried)} people")
        else:
            logger.info(f"Loaded {window}: no rows and no roster to carry over")
        return WeekBoard(window=window, people=carried, carried_over=bool(carried))

    def carried_headcount(self, name: str) -> int | None:
        """Headcount last seen for name, if the carry-over roster knows it."""
        entry = self.roster.get(name)
        return entry.headcount if entry else None
