"""
Tests for reservation models: row mapping, plan keys, board totals.
"""

from datetime import date

import pytest

from mealboard.models import (
    PersonReservation,
    ReservationRow,
    WeekBoard,
    parse_plan_key,
    plan_key,
)
from mealboard.schedule import Slot, week_window

D4 = date(2024, 6, 4)
D5 = date(2024, 6, 5)


class TestPlanKey:
    def test_render(self):
        assert plan_key(D4, Slot.MORNING) == "2024-06-04-早"

    def test_parse_splits_on_last_dash(self):
        assert parse_plan_key("2024-06-04-早") == (D4, Slot.MORNING)
        assert parse_plan_key("2024-06-05-evening") == (D5, Slot.EVENING)

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_plan_key("早")
        with pytest.raises(ValueError):
            parse_plan_key("2024-13-01-早")


class TestReservationRow:
    def test_from_record(self):
        row = ReservationRow.from_record(
            {"user_name": "Alice", "meal_date": "2024-06-04", "meal_type": "中", "meal_count": 2, "owner_id": "u-1"}
        )
        assert row.person_name == "Alice"
        assert row.meal_date == D4
        assert row.slot is Slot.NOON
        assert row.reserved_count == 2
        assert row.owner_identity == "u-1"
        assert row.key == ("Alice", D4, Slot.NOON)

    def test_null_count_defaults_to_one(self):
        row = ReservationRow.from_record(
            {"user_name": "Bob", "meal_date": "2024-06-04", "meal_type": "晚", "meal_count": None}
        )
        assert row.reserved_count == 1
        assert row.owner_identity is None

    def test_to_record_omits_missing_owner(self):
        row = ReservationRow(person_name="Bob", meal_date=D4, slot=Slot.EVENING, reserved_count=3)
        assert row.to_record() == {
            "user_name": "Bob",
            "meal_date": "2024-06-04",
            "meal_type": "晚",
            "meal_count": 3,
        }

    def test_to_record_includes_owner(self):
        row = ReservationRow(person_name="Bob", meal_date=D4, slot="早", owner_identity="u-2")
        assert row.to_record()["owner_id"] == "u-2"
        assert row.to_record()["meal_type"] == "早"


class TestPersonReservation:
    def test_placeholder(self):
        assert PersonReservation(name="").is_placeholder
        assert PersonReservation(name="   ").is_placeholder
        assert not PersonReservation(name="Alice").is_placeholder

    def test_rows_use_current_headcount(self):
        person = PersonReservation(
            name="Alice",
            headcount=3,
            reservations={(D5, Slot.MORNING): 1, (D4, Slot.EVENING): 2, (D4, Slot.MORNING): 1},
        )
        rows = person.rows()
        assert [(r.meal_date, r.slot) for r in rows] == [
            (D4, Slot.MORNING),
            (D4, Slot.EVENING),
            (D5, Slot.MORNING),
        ]
        assert {r.reserved_count for r in rows} == {3}

    def test_plan_keys(self):
        person = PersonReservation(name="Alice", reservations={(D4, Slot.MORNING): 2})
        assert person.plan_keys() == {"2024-06-04-早": 2}

    def test_copy_does_not_share_reservations(self):
        person = PersonReservation(name="Alice", reservations={(D4, Slot.MORNING): 1})
        clone = person.copy(headcount=4)
        clone.reservations[(D5, Slot.NOON)] = 4
        assert clone.headcount == 4
        assert person.headcount == 1
        assert (D5, Slot.NOON) not in person.reservations


class TestWeekBoardTotals:
    """Totals are headcount sums, never stored counts."""

    def _board(self):
        return WeekBoard(
            window=week_window(D4),
            people=[
                PersonReservation(name="Alice", headcount=2, reservations={(D4, Slot.MORNING): 1}),
                PersonReservation(
                    name="Bob",
                    headcount=3,
                    reservations={(D4, Slot.MORNING): 3, (D4, Slot.NOON): 3},
                ),
            ],
        )

    def test_slot_total_uses_headcount_not_stored_count(self):
        board = self._board()
        # Alice's stored count drifted to 1; her headcount is 2
        assert board.slot_total(D4, Slot.MORNING) == 5
        assert board.slot_total(D4, Slot.NOON) == 3
        assert board.slot_total(D4, Slot.EVENING) == 0

    def test_day_total_and_totals_grid(self):
        board = self._board()
        assert board.day_total(D4) == 8
        totals = board.totals()
        assert len(totals) == 21
        assert totals[(D4, Slot.MORNING)] == 5
        assert totals[(D5, Slot.MORNING)] == 0

    def test_find(self):
        board = self._board()
        assert board.find("Bob").headcount == 3
        assert board.find("Carol") is None
        assert board.index_of("Bob") == 1
        assert board.index_of("Carol") == -1
