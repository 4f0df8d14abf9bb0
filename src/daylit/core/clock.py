"""Pure time-of-day and date helpers - no I/O dependencies."""

import re
from dataclasses import dataclass
from datetime import date

_TIME_PATTERN = re.compile(r"([01]\d|2[0-3]):([0-5]\d)")
_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")

MINUTES_PER_DAY = 24 * 60


def parse_time(value: str) -> int:
    """Parse an HH:MM string into minutes from midnight."""
    match = _TIME_PATTERN.fullmatch(value or "")
    if not match:
        raise ValueError(f"invalid time (expected HH:MM): {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def is_valid_time(value: str) -> bool:
    return bool(_TIME_PATTERN.fullmatch(value or ""))


def format_time(minutes: int) -> str:
    """Format minutes from midnight as HH:MM, clamped to the day."""
    minutes = min(max(minutes, 0), MINUTES_PER_DAY - 1)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string."""
    if not _DATE_PATTERN.fullmatch(value or ""):
        raise ValueError(f"invalid date (expected YYYY-MM-DD): {value!r}")
    return date.fromisoformat(value)


def is_valid_date(value: str) -> bool:
    try:
        parse_date(value)
    except ValueError:
        return False
    return True


def times_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """
    Check whether two HH:MM ranges overlap.

    Ranges are half-open, so 09:00-10:00 and 10:00-11:00 do not overlap.
    Any unparsable bound means no overlap.
    """
    try:
        s1, e1 = parse_time(start1), parse_time(end1)
        s2, e2 = parse_time(start2), parse_time(end2)
    except ValueError:
        return False
    return s1 < e2 and s2 < e1


@dataclass(frozen=True)
class Interval:
    """A half-open [start, end) range of minutes from midnight."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def format(self) -> str:
        return f"{format_time(self.start)}-{format_time(self.end)} ({self.length} min)"


@dataclass(frozen=True)
class FreeIntervals:
    """
    Ordered, immutable collection of free intervals within a day.

    Placement never mutates the collection; it returns a new one.
    """

    intervals: tuple[Interval, ...] = ()

    def __iter__(self):
        return iter(self.intervals)

    def __len__(self) -> int:
        return len(self.intervals)

    def __getitem__(self, index: int) -> Interval:
        return self.intervals[index]

    @property
    def total_minutes(self) -> int:
        return sum(i.length for i in self.intervals)

    @classmethod
    def between(cls, day_start: int, day_end: int, busy: list[Interval]) -> "FreeIntervals":
        """
        Gaps between the day boundaries and the busy intervals.

        Busy intervals must be sorted by start. They may overlap each other
        and may extend past the day boundaries; gaps are clamped to the day.
        """
        gaps = []
        current = day_start

        for block in busy:
            # Skip blocks entirely outside the day
            if block.end <= day_start or block.start >= day_end:
                continue
            start = max(block.start, day_start)
            if current < start:
                gaps.append(Interval(current, start))
            current = max(current, min(block.end, day_end))

        if current < day_end:
            gaps.append(Interval(current, day_end))

        return cls(tuple(gaps))

    def place(self, index: int, start: int, end: int) -> "FreeIntervals":
        """Occupy [start, end) inside the interval at index and return the new collection."""
        block = self.intervals[index]
        if start < block.start or end > block.end or end < start:
            raise ValueError(f"{format_time(start)}-{format_time(end)} does not fit in {block.format()}")

        leftovers = []
        if block.start < start:
            leftovers.append(Interval(block.start, start))
        if end < block.end:
            leftovers.append(Interval(end, block.end))

        return FreeIntervals(self.intervals[:index] + tuple(leftovers) + self.intervals[index + 1 :])
