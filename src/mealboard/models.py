"""
Meal Board - Reservation Models.

ReservationRow maps one record of the meal_plan table:

    user_name | meal_date  | meal_type | meal_count | owner_id
    ----------+------------+-----------+------------+---------
    Alice     | 2024-06-04 | 早        | 2          | u-123

PersonReservation is the in-memory aggregate the board works with: one
per person per loaded week, holding the (date, slot) cells they reserved.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from mealboard.schedule import SLOTS, Slot, WeekWindow

CellKey = tuple[date, Slot]


def plan_key(day: date, slot: Slot) -> str:
    """Render a cell key as 'YYYY-MM-DD-早'."""
    return f"{day.isoformat()}-{slot.value}"


def parse_plan_key(key: str) -> CellKey:
    """Inverse of plan_key. Splits on the last dash only; the date has two."""
    day_part, _, slot_part = key.rpartition("-")
    if not day_part:
        raise ValueError(f"Malformed plan key: {key!r}")
    return date.fromisoformat(day_part), Slot.parse(slot_part)


# =============================================================================
# Persisted row
# =============================================================================


class ReservationRow(BaseModel):
    """One persisted (person, date, slot) reservation."""

    model_config = ConfigDict(frozen=True)

    person_name: str
    meal_date: date
    slot: Slot
    reserved_count: int = 1
    owner_identity: str | None = None

    @field_validator("slot", mode="before")
    @classmethod
    def _parse_slot(cls, value: Any) -> Slot:
        return Slot.parse(value)

    @field_validator("reserved_count", mode="before")
    @classmethod
    def _default_count(cls, value: Any) -> Any:
        # Legacy rows may carry a null count; one meal is the implicit default
        return 1 if value is None else value

    @property
    def key(self) -> tuple[str, date, Slot]:
        """Row identity in the store."""
        return (self.person_name, self.meal_date, self.slot)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ReservationRow":
        return cls(
            person_name=record["user_name"],
            meal_date=record["meal_date"],
            slot=record["meal_type"],
            reserved_count=record.get("meal_count"),
            owner_identity=record.get("owner_id") or None,
        )

    def to_record(self) -> dict[str, Any]:
        record = {
            "user_name": self.person_name,
            "meal_date": self.meal_date.isoformat(),
            "meal_type": self.slot.value,
            "meal_count": self.reserved_count,
        }
        if self.owner_identity:
            record["owner_id"] = self.owner_identity
        return record


# =============================================================================
# In-memory aggregate
# =============================================================================


@dataclass
class PersonReservation:
    """
    One person's reservations for the loaded week.

    Presence of a (date, slot) key means reserved. The stored count is
    kept for reference only; totals always use `headcount`.
    """

    name: str
    headcount: int = 1
    owner_identity: str | None = None
    reservations: dict[CellKey, int] = field(default_factory=dict)

    @property
    def is_placeholder(self) -> bool:
        return not self.name.strip()

    def has(self, day: date, slot: Slot) -> bool:
        return (day, slot) in self.reservations

    def plan_keys(self) -> dict[str, int]:
        return {plan_key(day, slot): count for (day, slot), count in self.reservations.items()}

    def row(self, day: date, slot: Slot, count: int | None = None) -> ReservationRow:
        return ReservationRow(
            person_name=self.name,
            meal_date=day,
            slot=slot,
            reserved_count=self.headcount if count is None else count,
            owner_identity=self.owner_identity,
        )

    def rows(self) -> list[ReservationRow]:
        """Every reserved cell as a row at the current headcount, in date/slot order."""
        return [self.row(day, slot) for day, slot in sorted_cells(self.reservations)]

    def copy(self, **changes: Any) -> "PersonReservation":
        clone = replace(self, reservations=dict(self.reservations))
        for attr, value in changes.items():
            setattr(clone, attr, value)
        return clone


def sorted_cells(cells) -> list[CellKey]:
    """Cells ordered by date, then slot display order."""
    return sorted(cells, key=lambda cell: (cell[0], SLOTS.index(cell[1])))


@dataclass
class WeekBoard:
    """The published model for one week: window plus roster."""

    window: WeekWindow
    people: list[PersonReservation] = field(default_factory=list)
    carried_over: bool = False

    def find(self, name: str) -> PersonReservation | None:
        for person in self.people:
            if person.name == name:
                return person
        return None

    def index_of(self, name: str) -> int:
        for i, person in enumerate(self.people):
            if person.name == name:
                return i
        return -1

    def slot_total(self, day: date, slot: Slot) -> int:
        """Meals for one cell: headcount summed over everyone who reserved it."""
        return sum(p.headcount for p in self.people if (day, slot) in p.reservations)

    def day_total(self, day: date) -> int:
        return sum(self.slot_total(day, slot) for slot in SLOTS)

    def totals(self) -> dict[CellKey, int]:
        return {
            (day, slot): self.slot_total(day, slot)
            for day in self.window.days()
            for slot in SLOTS
        }
