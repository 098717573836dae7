"""
Meal Board - Schedule Calendar.

Pure date arithmetic: the Monday-start week window around any anchor
date, and the per-slot cut-off instants that decide whether a cell can
still be changed.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Iterator
from zoneinfo import ZoneInfo


class Slot(Enum):
    """Daily meal slots. The value is what the meal_type column stores."""

    MORNING = "早"
    NOON = "中"
    EVENING = "晚"

    @classmethod
    def parse(cls, value: "str | Slot") -> "Slot":
        """Accept a stored value (早), a member name (morning) or a Slot."""
        if isinstance(value, Slot):
            return value
        try:
            return cls(value)
        except ValueError:
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown meal slot: {value!r}") from None


# Display/iteration order
SLOTS: tuple[Slot, ...] = (Slot.MORNING, Slot.NOON, Slot.EVENING)

DEFAULT_CUTOFF_HOURS: dict[Slot, int] = {
    Slot.MORNING: 6,
    Slot.NOON: 9,
    Slot.EVENING: 14,
}


@dataclass(frozen=True)
class WeekWindow:
    """Monday..Sunday, both ends inclusive."""

    start: date
    end: date

    def days(self) -> Iterator[date]:
        for offset in range(7):
            yield self.start + timedelta(days=offset)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def shift(self, weeks: int) -> "WeekWindow":
        delta = timedelta(days=7 * weeks)
        return WeekWindow(self.start + delta, self.end + delta)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


class ScheduleCalendar:
    """
    Week windows and cut-offs for one site.

    With a timezone set, cut-offs are aware datetimes in that zone and a
    naive `now` is read as local wall-clock time there. Without one,
    everything is naive local time.
    """

    def __init__(
        self,
        cutoff_hours: dict[Slot, int] | None = None,
        tz: tzinfo | None = None,
    ):
        self.cutoff_hours = dict(DEFAULT_CUTOFF_HOURS)
        if cutoff_hours:
            self.cutoff_hours.update(cutoff_hours)
        self.tz = tz

    @classmethod
    def from_settings(cls, board_settings=None) -> "ScheduleCalendar":
        """Build from BoardSettings (defaults to the cached settings)."""
        if board_settings is None:
            from mealboard.config import get_settings

            board_settings = get_settings()
        hours = {Slot[name]: hour for name, hour in board_settings.cutoff_hours.items()}
        return cls(cutoff_hours=hours, tz=ZoneInfo(board_settings.mealboard_timezone))

    def now(self) -> datetime:
        return datetime.now(self.tz) if self.tz else datetime.now()

    def _local_date(self, value: date | datetime) -> date:
        if isinstance(value, datetime):
            if value.tzinfo is not None and self.tz is not None:
                value = value.astimezone(self.tz)
            return value.date()
        return value

    def week_window(self, anchor: date | datetime) -> WeekWindow:
        """Most recent Monday on or before the anchor, through the following Sunday."""
        day = self._local_date(anchor)
        start = day - timedelta(days=day.weekday())
        return WeekWindow(start, start + timedelta(days=6))

    def cutoff_instant(self, day: date, slot: Slot) -> datetime:
        return datetime.combine(day, time(hour=self.cutoff_hours[slot]), tzinfo=self.tz)

    def is_editable(self, day: date, slot: Slot, now: datetime | None = None) -> bool:
        """True strictly before the slot's cut-off on that day. Never cached."""
        if now is None:
            now = self.now()
        elif self.tz is not None and now.tzinfo is None:
            now = now.replace(tzinfo=self.tz)
        elif self.tz is None and now.tzinfo is not None:
            now = now.astimezone().replace(tzinfo=None)
        return now < self.cutoff_instant(day, slot)


# Module-level helpers on the default (naive, 6/9/14) calendar
_default_calendar = ScheduleCalendar()


def week_window(anchor: date | datetime) -> WeekWindow:
    return _default_calendar.week_window(anchor)


def cutoff_instant(day: date, slot: Slot) -> datetime:
    return _default_calendar.cutoff_instant(day, slot)


def is_editable(day: date, slot: Slot, now: datetime) -> bool:
    return _default_calendar.is_editable(day, slot, now)
