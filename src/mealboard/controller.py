"""
Meal Board - Mutation Controller.

Applies user intents (toggle, recount, rename, add, delete, bulk edit,
week navigation) to the loaded WeekBoard and drives the matching store
writes.

Every operation follows the same cycle:

    validate -> authorize -> check cut-offs -> write to store -> commit

Nothing is committed to the board until the store confirms, so a failed
write leaves the board exactly as it was. Each person has a lock held
for the whole cycle: two intents on the same entry run one after the
other, never interleaved. Across browser tabs or machines there is no
locking and the last write to a row wins.
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from datetime import date, datetime, timedelta
from typing import Callable, Iterable

from mealboard.db.request_context import ContextIdentityProvider, IdentityProvider
from mealboard.engine import ReconciliationEngine
from mealboard.errors import (
    ConfirmationRequired,
    CutoffPassed,
    DuplicateName,
    EmptyName,
    InvalidCount,
    OutOfWindow,
    PermissionDenied,
    UnknownPerson,
)
from mealboard.models import CellKey, PersonReservation, WeekBoard, parse_plan_key, sorted_cells
from mealboard.permissions import Action, Decision, check_capability
from mealboard.schedule import Slot
from mealboard.view import BoardView, build_board_view

logger = logging.getLogger(__name__)


def _validate_count(count: int) -> int:
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidCount(count)
    return count


def _coerce_cell(cell: CellKey | str) -> CellKey:
    if isinstance(cell, str):
        return parse_plan_key(cell)
    day, slot = cell
    return day, Slot.parse(slot)


class MutationController:
    """Owns the current week and every write made to it."""

    def __init__(
        self,
        engine: ReconciliationEngine,
        identity: IdentityProvider | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.engine = engine
        self.store = engine.store
        self.calendar = engine.calendar
        self.identity = identity or ContextIdentityProvider()
        self.clock = clock or self.calendar.now
        self.anchor: date | None = None
        self._board: WeekBoard | None = None
        self._locks: dict[str, asyncio.Lock] = {}

    # =========================================================================
    # Loading and navigation
    # =========================================================================

    @property
    def board(self) -> WeekBoard:
        if self._board is None:
            raise RuntimeError("No week loaded; call load() first")
        return self._board

    async def load(self, anchor: date | None = None) -> WeekBoard:
        """Load the week containing anchor (today by default)."""
        if anchor is None:
            anchor = self.clock().date()
        board = await self.engine.load_week(anchor)
        self.anchor = anchor
        self._board = board
        # Locks of names no longer on the board are dead weight
        self._locks = {
            name: lock for name, lock in self._locks.items()
            if lock.locked() or board.find(name) is not None
        }
        return board

    async def reload(self) -> WeekBoard:
        return await self.load(self.anchor)

    async def change_week(self, direction: int) -> WeekBoard:
        """
        Flush everyone's reservations, then move direction weeks.

        A failed flush raises and the board stays on the current week.
        """
        board = self.board
        for person in list(board.people):
            if person.is_placeholder or not person.reservations:
                continue
            async with self._lock(person.name):
                await self.store.upsert_batch(person.rows())
        logger.debug(f"Flushed {board.window} before navigating")
        return await self.load(self.anchor + timedelta(days=7 * direction))

    # =========================================================================
    # Queries for the presentation layer
    # =========================================================================

    def totals(self) -> dict[CellKey, int]:
        return self.board.totals()

    def view(self, now: datetime | None = None) -> BoardView:
        return build_board_view(self.board, self.calendar, now or self.clock())

    def is_editable(self, day: date, slot: Slot) -> bool:
        return self.calendar.is_editable(day, slot, self.clock())

    def capability(self, name: str, action: Action) -> Decision:
        """What the acting identity may do to name's entry."""
        person = self._person(name)
        return check_capability(action, person.owner_identity, self.identity.current_identity())

    # =========================================================================
    # Mutations
    # =========================================================================

    async def toggle_slot(self, name: str, day: date, slot: Slot) -> PersonReservation:
        """Reserve the cell if free, release it if reserved."""
        async with self._lock(name):
            person = self._person(name)
            if person.is_placeholder:
                raise EmptyName("Name the entry before reserving meals")
            self._authorize(Action.TOGGLE, person)
            self._check_in_window(day)
            self._check_cutoff(day, slot)

            updated = person.copy()
            if person.has(day, slot):
                del updated.reservations[(day, slot)]
                await self.store.delete_by_key(person.name, day, slot)
            else:
                updated.reservations[(day, slot)] = person.headcount
                await self.store.upsert(person.row(day, slot))

            self._replace(person, updated)
            logger.info(
                f"{name}: {'reserved' if updated.has(day, slot) else 'released'} {day} {slot.value}"
            )
            return updated

    async def set_headcount(self, name: str, count: int) -> PersonReservation:
        """Change meals per slot and rewrite this week's rows at the new count."""
        _validate_count(count)
        async with self._lock(name):
            person = self._person(name)
            self._authorize(Action.RECOUNT, person)

            updated = person.copy(
                headcount=count,
                reservations={cell: count for cell in person.reservations},
            )
            if not person.is_placeholder:
                await self.store.upsert_batch(updated.rows())

            self._replace(person, updated)
            logger.info(f"{name}: headcount {person.headcount} -> {count}")
            return updated

    async def rename(self, name: str, new_name: str) -> PersonReservation:
        """
        Give an entry a new name.

        This week's rows move to the new name. Rows in other weeks keep
        the old name: names are the row identity, so history is not
        rewritten. Renaming onto someone already on the board merges the
        two entries; the renamed entry's headcount wins.

        Moving a row deletes it under the old name, so every reserved
        cell must still be before its cut-off.

        Raises:
            CutoffPassed: a reserved cell is closed; nothing is written
        """
        new_name = (new_name or "").strip()
        if not new_name:
            raise EmptyName()
        if new_name == name:
            return self._person(name)

        async with AsyncExitStack() as stack:
            for lock_name in sorted({name, new_name}):
                await stack.enter_async_context(self._lock(lock_name))

            person = self._person(name)
            self._authorize(Action.RENAME, person)
            target = self.board.find(new_name)
            if target is not None:
                self._authorize(Action.RENAME, target)
            for day, slot in sorted_cells(person.reservations):
                self._check_cutoff(day, slot)

            previous = {}
            if target is not None:
                previous = target.reservations
                renamed = target.copy(
                    headcount=target.headcount if person.is_placeholder else person.headcount,
                    reservations={**target.reservations, **person.reservations},
                )
                renamed.reservations = {cell: renamed.headcount for cell in renamed.reservations}
            else:
                renamed = person.copy(name=new_name)

            changed = [
                cell for cell in sorted_cells(renamed.reservations)
                if cell in person.reservations or previous.get(cell) != renamed.headcount
            ]
            await self.store.upsert_batch(renamed.row(day, slot) for day, slot in changed)
            if not person.is_placeholder:
                await self.store.delete_batch(
                    (person.name, day, slot) for day, slot in sorted_cells(person.reservations)
                )

            if target is not None:
                self.board.people.remove(person)
                self._replace(target, renamed)
                logger.info(f"Renamed {name!r} onto existing {new_name!r}; entries merged")
            else:
                self._replace(person, renamed)
                logger.info(f"Renamed {name!r} -> {new_name!r}")
            self._locks.pop(name, None)
            return renamed

    async def add_person(self, name: str) -> PersonReservation:
        """Add a named entry with nothing reserved yet."""
        name = (name or "").strip()
        if not name:
            raise EmptyName()
        if self.board.find(name) is not None:
            raise DuplicateName(name)

        person = PersonReservation(
            name=name,
            headcount=self.engine.carried_headcount(name) or 1,
            owner_identity=self.identity.current_identity(),
        )
        self.board.people.append(person)
        logger.info(f"Added {name} (headcount {person.headcount})")
        return person

    def add_placeholder(self) -> PersonReservation:
        """Add (or return the existing) unnamed entry; name it with rename()."""
        existing = self.board.find("")
        if existing is not None:
            return existing
        person = PersonReservation(name="", owner_identity=self.identity.current_identity())
        self.board.people.append(person)
        return person

    async def delete_person(self, name: str, confirmed: bool = False) -> int:
        """
        Remove an entry and every row it ever had, in all weeks.

        Returns the number of rows deleted from the store.

        Raises:
            ConfirmationRequired: confirmed was not set
        """
        async with self._lock(name):
            person = self._person(name)
            self._authorize(Action.DELETE, person, confirmed=confirmed)

            deleted = 0
            if not person.is_placeholder:
                deleted = await self.store.delete_by_person(person.name)

            self.board.people.remove(person)
            self._locks.pop(name, None)
            logger.info(f"Deleted {name!r} and {deleted} stored rows")
            return deleted

    async def bulk_edit_week(
        self,
        name: str,
        count: int,
        cells: Iterable[CellKey | str],
    ) -> PersonReservation:
        """
        Replace an entry's whole week and headcount in one action.

        cells is the complete new set of reserved (date, slot) cells for
        the loaded week; 'YYYY-MM-DD-早' keys are accepted too. Cells
        being added or removed must still be before their cut-off.
        """
        _validate_count(count)
        new_cells = {_coerce_cell(cell) for cell in cells}

        async with self._lock(name):
            person = self._person(name)
            if person.is_placeholder and new_cells:
                raise EmptyName("Name the entry before reserving meals")
            self._authorize(Action.BULK_EDIT, person)
            for day, _ in new_cells:
                self._check_in_window(day)

            old_cells = set(person.reservations)
            added = new_cells - old_cells
            removed = old_cells - new_cells
            for day, slot in sorted_cells(added | removed):
                self._check_cutoff(day, slot)

            updated = person.copy(
                headcount=count,
                reservations={cell: count for cell in new_cells},
            )
            changed = [
                cell for cell in sorted_cells(new_cells)
                if cell in added or person.reservations[cell] != count
            ]
            await self.store.upsert_batch(updated.row(day, slot) for day, slot in changed)
            await self.store.delete_batch(
                (person.name, day, slot) for day, slot in sorted_cells(removed)
            )

            self._replace(person, updated)
            logger.info(
                f"{name}: bulk edit, headcount {count}, +{len(added)} -{len(removed)} cells"
            )
            return updated

    # =========================================================================
    # Helpers
    # =========================================================================

    def _lock(self, name: str) -> asyncio.Lock:
        return self._locks.setdefault(name, asyncio.Lock())

    def _person(self, name: str) -> PersonReservation:
        person = self.board.find(name)
        if person is None:
            raise UnknownPerson(name)
        return person

    def _replace(self, old: PersonReservation, new: PersonReservation) -> None:
        self.board.people[self.board.people.index(old)] = new

    def _authorize(self, action: Action, person: PersonReservation, confirmed: bool = False) -> None:
        acting = self.identity.current_identity()
        decision = check_capability(action, person.owner_identity, acting)
        if decision is Decision.DENY:
            raise PermissionDenied(person.name, person.owner_identity, acting)
        if decision is Decision.REQUIRES_CONFIRMATION and not confirmed:
            raise ConfirmationRequired(action.value, person.name)

    def _check_in_window(self, day: date) -> None:
        window = self.board.window
        if not window.contains(day):
            raise OutOfWindow(day, window.start, window.end)

    def _check_cutoff(self, day: date, slot: Slot) -> None:
        if not self.calendar.is_editable(day, slot, self.clock()):
            raise CutoffPassed(day, slot.value, self.calendar.cutoff_instant(day, slot))
