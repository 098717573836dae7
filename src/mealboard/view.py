"""
Meal Board - Board view model.

A presentation-neutral snapshot of one week: who reserved what, which
cells can still be changed right now, and the totals the kitchen plans
from. Any front end (the CLI, a web page) renders this and nothing else.
"""

from datetime import date, datetime

from pydantic import BaseModel

from mealboard.models import WeekBoard, plan_key
from mealboard.schedule import SLOTS, ScheduleCalendar, Slot

WEEKDAY_LABELS = ("周一", "周二", "周三", "周四", "周五", "周六", "周日")


class DayColumn(BaseModel):
    day: date
    label: str  # "06/04 周二"


class CellView(BaseModel):
    key: str
    day: date
    slot: Slot
    checked: bool
    editable: bool


class PersonRowView(BaseModel):
    name: str
    headcount: int
    owner_identity: str | None = None
    placeholder: bool = False
    cells: list[CellView]


class CellTotal(BaseModel):
    day: date
    slot: Slot
    total: int
    editable: bool


class BoardView(BaseModel):
    start: date
    end: date
    carried_over: bool = False
    days: list[DayColumn]
    slots: list[Slot]
    people: list[PersonRowView]
    totals: list[CellTotal]
    day_totals: dict[date, int]

    def total(self, day: date, slot: Slot) -> int:
        for cell in self.totals:
            if cell.day == day and cell.slot == slot:
                return cell.total
        return 0


def day_label(day: date) -> str:
    return f"{day:%m/%d} {WEEKDAY_LABELS[day.weekday()]}"


def build_board_view(board: WeekBoard, calendar: ScheduleCalendar, now: datetime) -> BoardView:
    """Snapshot board as of now. Editability is evaluated per cell, per call."""
    days = list(board.window.days())
    editable = {
        (day, slot): calendar.is_editable(day, slot, now)
        for day in days
        for slot in SLOTS
    }

    people = []
    for person in board.people:
        cells = [
            CellView(
                key=plan_key(day, slot),
                day=day,
                slot=slot,
                checked=person.has(day, slot),
                editable=editable[(day, slot)] and not person.is_placeholder,
            )
            for day in days
            for slot in SLOTS
        ]
        people.append(
            PersonRowView(
                name=person.name,
                headcount=person.headcount,
                owner_identity=person.owner_identity,
                placeholder=person.is_placeholder,
                cells=cells,
            )
        )

    totals = [
        CellTotal(day=day, slot=slot, total=board.slot_total(day, slot), editable=editable[(day, slot)])
        for day in days
        for slot in SLOTS
    ]

    return BoardView(
        start=board.window.start,
        end=board.window.end,
        carried_over=board.carried_over,
        days=[DayColumn(day=day, label=day_label(day)) for day in days],
        slots=list(SLOTS),
        people=people,
        totals=totals,
        day_totals={day: board.day_total(day) for day in days},
    )
