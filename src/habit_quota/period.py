"""Calendar window resolution for habit recurrence periods."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum

from .exceptions import ValidationFailureError

# Smallest step datetime can represent; a window ends one tick before the next starts.
TICK = timedelta(microseconds=1)


class PeriodKind(str, Enum):
    """Recurrence granularity a habit is tracked against."""

    DAY = "day"
    WEEK = "week"
    FORTNIGHT = "fortnight"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def parse(cls, name: str) -> PeriodKind:
        """Parse a period name case-insensitively."""
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            raise ValidationFailureError("period", f"Invalid period: {name!r}")
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValidationFailureError("period", f"Invalid period: {name}") from None


@dataclass(frozen=True)
class PeriodWindow:
    """Inclusive [start, end] interval containing a reference instant."""

    kind: PeriodKind
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


def _start_of(day: date, reference: datetime) -> datetime:
    return datetime.combine(day, time.min, tzinfo=reference.tzinfo)


def _end_of(day: date, reference: datetime) -> datetime:
    return datetime.combine(day, time.max, tzinfo=reference.tzinfo)


def _monday_of(day: date) -> date:
    # weekday(): Monday == 0, so this is the offset back to Monday.
    return day - timedelta(days=day.weekday())


def _fortnight_start(day: date) -> date:
    """First day of the fortnight block containing `day`.

    Monday-aligned weeks are numbered within the month; weeks 0-1 form the
    first block and weeks 2-3 the second. A week whose Monday precedes the
    1st counts as week 0, and a fifth Monday-week opens its own block, so
    the block always contains `day`.
    """
    monday_offset = day.weekday()
    week_index = max((day.day - monday_offset - 1) // 7, 0)
    block_index = week_index // 2 * 2
    return day - timedelta(days=monday_offset + (week_index - block_index) * 7)


def resolve_window(kind: PeriodKind, reference: datetime) -> PeriodWindow:
    """Return the window of `kind` that contains `reference`.

    Boundaries are computed on the calendar date of `reference` and carry
    its tzinfo (naive in, naive out). `end` is the last microsecond of the
    window's final day.
    """
    day = reference.date()

    if kind is PeriodKind.DAY:
        first, last = day, day
    elif kind is PeriodKind.WEEK:
        first = _monday_of(day)
        last = first + timedelta(days=6)
    elif kind is PeriodKind.FORTNIGHT:
        first = _fortnight_start(day)
        last = first + timedelta(days=13)
    elif kind is PeriodKind.MONTH:
        first = day.replace(day=1)
        last = day.replace(day=calendar.monthrange(day.year, day.month)[1])
    elif kind is PeriodKind.YEAR:
        first = date(day.year, 1, 1)
        last = date(day.year, 12, 31)
    else:
        raise TypeError(f"unsupported period kind: {kind!r}")

    return PeriodWindow(
        kind=kind,
        start=_start_of(first, reference),
        end=_end_of(last, reference),
    )
