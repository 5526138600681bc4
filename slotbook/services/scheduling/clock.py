"""Minute-offset time arithmetic for a single civil date.

All engine computations work on integer minutes since the midnight that starts
the target date. Wall-clock ``time`` values map to ``0 .. 1439``; appointment
datetimes on neighbouring days map outside that range, which keeps overlap
checks correct across midnight.
"""

import math
from datetime import date, datetime, time
from typing import NamedTuple

MINUTES_PER_DAY = 24 * 60


class Interval(NamedTuple):
    """Half-open ``[start, end)`` interval in minutes."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        # Touching intervals (self.end == other.start) do not overlap
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    """Render a minute offset as a zero-padded 24h ``HH:MM`` string."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_since_midnight(day: date, moment: datetime, round_up: bool = False) -> int:
    midnight = datetime.combine(day, time.min, tzinfo=moment.tzinfo)
    minutes = (moment - midnight).total_seconds() / 60
    return math.ceil(minutes) if round_up else math.floor(minutes)

