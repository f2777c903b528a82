"""Weekly time windows for block rules.

A schedule is configured as a mapping of weekday to a list of
``after``/``before`` clock pairs:

    night:
      mon: [{after: "21:00", before: "07:00"}]
      sat: [{after: "00:00", before: "00:00"}]   # equal ends = all day

Days that are not listed have no ranges, so a rule gated by the schedule
is inactive on those days.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from .types import TimeFormatError

DAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

SECONDS_PER_DAY = 86400

# Sentinel for a range covering the whole day
FULL_DAY_START = -1
FULL_DAY_END = 86402


def parse_clock(value: str) -> int:
    """Convert an ``HH:MM`` string to seconds since midnight.

    Raises:
        TimeFormatError: if the value is not two colon-separated fields,
            or the hour/minute is out of range.
    """
    parts = value.split(":")
    if len(parts) != 2:
        raise TimeFormatError(value)
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        raise TimeFormatError(value) from None
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59:
        raise TimeFormatError(value)
    return (hours * 60 + minutes) * 60


@dataclass(frozen=True)
class TimeRange:
    """A range of seconds within a day. ``start > end`` wraps past midnight."""

    start: int
    end: int

    @property
    def full_day(self) -> bool:
        return self.start == FULL_DAY_START and self.end == FULL_DAY_END

    def contains(self, second: int) -> bool:
        if self.start <= self.end:
            return self.start <= second < self.end
        return second >= self.start or second < self.end


def _pair(item) -> tuple[str, str]:
    if isinstance(item, Mapping):
        try:
            return str(item["after"]), str(item["before"])
        except KeyError as e:
            raise TimeFormatError(f"missing '{e.args[0]}' in {dict(item)}") from None
    after, before = item
    return str(after), str(before)


def parse_time_ranges(pairs: Iterable) -> list[TimeRange]:
    """Parse ``(after, before)`` pairs into time ranges.

    Each pair may be a tuple or a mapping with ``after`` and ``before``
    keys. Equal ends mean the whole day.
    """
    ranges: list[TimeRange] = []
    for item in pairs:
        after_str, before_str = _pair(item)
        after = parse_clock(after_str)
        before = parse_clock(before_str)
        if after == before:
            after, before = FULL_DAY_START, FULL_DAY_END
        ranges.append(TimeRange(after, before))
    return ranges


@dataclass(frozen=True)
class WeeklyRanges:
    """Seven per-weekday tuples of time ranges, Sunday first."""

    ranges: tuple[tuple[TimeRange, ...], ...] = field(
        default_factory=lambda: ((),) * len(DAYS)
    )

    def for_day(self, day: str) -> tuple[TimeRange, ...]:
        return self.ranges[DAYS.index(day)]

    def match(self, when: datetime | None = None) -> bool:
        """Check whether the window is active at ``when`` (local time)."""
        if when is None:
            when = datetime.now()
        # datetime.weekday() is Monday=0; the slots are Sunday first
        day = (when.weekday() + 1) % 7
        second = when.hour * 3600 + when.minute * 60 + when.second
        return any(r.contains(second) for r in self.ranges[day])


def parse_weekly_ranges(days: Mapping[str, Iterable]) -> WeeklyRanges:
    """Build a WeeklyRanges from a mapping of day name to clock pairs.

    Only the keys ``sun`` to ``sat`` are read. The first parse error
    propagates.
    """
    slots: list[tuple[TimeRange, ...]] = []
    for day in DAYS:
        pairs = days.get(day)
        if pairs is None:
            slots.append(())
            continue
        slots.append(tuple(parse_time_ranges(pairs)))
    return WeeklyRanges(tuple(slots))
