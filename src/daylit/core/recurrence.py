"""Recurrence rules and due-date resolution - no I/O dependencies."""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from .clock import parse_date

if TYPE_CHECKING:
    from .tasks import Task

LAST_OCCURRENCE = -1
WEEKDAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


@dataclass(frozen=True)
class Daily:
    """Due every day."""


@dataclass(frozen=True)
class Weekly:
    """Due on a set of weekdays (Monday=0 .. Sunday=6)."""

    weekdays: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class EveryNDays:
    """Due once `interval_days` have passed since the task was last done."""

    interval_days: int = 1


@dataclass(frozen=True)
class AdHoc:
    """Never scheduled automatically."""


@dataclass(frozen=True)
class MonthlyByDate:
    """Due on a fixed day of the month. Months without that day are skipped."""

    day: int


@dataclass(frozen=True)
class MonthlyByWeekday:
    """Due on the Nth weekday of the month, e.g. 3rd Wednesday, or -1 for the last one."""

    weekday: int
    occurrence: int


@dataclass(frozen=True)
class Yearly:
    """Due on the same month and day every year. Feb 29 only matches in leap years."""

    month: int
    day: int


@dataclass(frozen=True)
class Weekdays:
    """Due Monday through Friday."""


Recurrence = Daily | Weekly | EveryNDays | AdHoc | MonthlyByDate | MonthlyByWeekday | Yearly | Weekdays


def days_since(last_done: str, as_of: date) -> int | None:
    """
    Whole days between last_done and as_of.

    Works on hours and rounds, so a 23- or 25-hour day still counts as one.
    Returns None if last_done does not parse.
    """
    try:
        done = parse_date(last_done)
    except ValueError:
        return None
    elapsed = datetime.combine(as_of, datetime.min.time()) - datetime.combine(done, datetime.min.time())
    return round(elapsed.total_seconds() / 3600 / 24)


def week_occurrence(d: date) -> int:
    """Which occurrence of its weekday d is within its month (1-5)."""
    return (d.day - 1) // 7 + 1


def is_last_occurrence(d: date) -> bool:
    """True if d is the last of its weekday in its month."""
    return (d + timedelta(days=7)).month != d.month


def is_due(task: "Task", d: date) -> bool:
    """
    Decide whether a task is due on a date.

    Pure and total: malformed data resolves to "not due" rather than raising.
    """
    match task.recurrence:
        case Daily():
            return True
        case Weekly(weekdays=weekdays):
            return d.weekday() in weekdays
        case EveryNDays(interval_days=interval):
            if not task.last_done:
                return True
            elapsed = days_since(task.last_done, d)
            if elapsed is None:
                return False
            return elapsed >= interval
        case AdHoc():
            return False
        case MonthlyByDate(day=day):
            return d.day == day
        case MonthlyByWeekday(weekday=weekday, occurrence=occurrence):
            if d.weekday() != weekday:
                return False
            if occurrence == LAST_OCCURRENCE:
                return is_last_occurrence(d)
            return week_occurrence(d) == occurrence
        case Yearly(month=month, day=day):
            return d.month == month and d.day == day
        case Weekdays():
            return d.weekday() < 5
        case _:
            return False


def lateness(task: "Task", d: date) -> float:
    """
    How overdue a task is, relative to its interval.

    Never-done tasks score 1.0; an unparsable last_done scores 0.0.
    Only every-N-days rules carry an interval, all others divide by 1.
    """
    if not task.last_done:
        return 1.0

    elapsed = days_since(task.last_done, d)
    if elapsed is None:
        return 0.0

    interval = 1
    if isinstance(task.recurrence, EveryNDays) and task.recurrence.interval_days > 0:
        interval = task.recurrence.interval_days

    return elapsed / interval


def recurrences_coincide(r1: Recurrence, r2: Recurrence) -> bool:
    """
    Whether two rules can ever fall on the same day.

    Only daily and weekly-vs-weekly are decided exactly; everything else
    is assumed to coincide.
    """
    if isinstance(r1, Daily) or isinstance(r2, Daily):
        return True

    if isinstance(r1, Weekly) and isinstance(r2, Weekly):
        if not r1.weekdays or not r2.weekdays:
            return True
        return bool(r1.weekdays & r2.weekdays)

    return True


def recurrence_from_dict(data: dict | None) -> Recurrence:
    """Build a Recurrence from its stored form. Unknown or broken rules become AdHoc."""
    data = data or {}
    try:
        match data.get("type", "ad_hoc"):
            case "daily":
                return Daily()
            case "weekly":
                return Weekly(frozenset(int(d) for d in data.get("weekdays", [])))
            case "n_days":
                return EveryNDays(int(data.get("interval_days", 1)))
            case "monthly_date":
                return MonthlyByDate(int(data["month_day"]))
            case "monthly_day":
                return MonthlyByWeekday(int(data["weekday"]), int(data["occurrence"]))
            case "yearly":
                return Yearly(int(data["month"]), int(data["month_day"]))
            case "weekdays":
                return Weekdays()
            case _:
                return AdHoc()
    except (KeyError, TypeError, ValueError):
        return AdHoc()


def recurrence_to_dict(rule: Recurrence) -> dict:
    """Serialize a Recurrence with a type tag."""
    match rule:
        case Daily():
            return {"type": "daily"}
        case Weekly(weekdays=weekdays):
            return {"type": "weekly", "weekdays": sorted(weekdays)}
        case EveryNDays(interval_days=interval):
            return {"type": "n_days", "interval_days": interval}
        case MonthlyByDate(day=day):
            return {"type": "monthly_date", "month_day": day}
        case MonthlyByWeekday(weekday=weekday, occurrence=occurrence):
            return {"type": "monthly_day", "weekday": weekday, "occurrence": occurrence}
        case Yearly(month=month, day=day):
            return {"type": "yearly", "month": month, "month_day": day}
        case Weekdays():
            return {"type": "weekdays"}
        case _:
            return {"type": "ad_hoc"}


def describe(rule: Recurrence) -> str:
    """Human-readable summary of a rule."""
    match rule:
        case Daily():
            return "daily"
        case Weekly(weekdays=weekdays):
            names = ",".join(WEEKDAY_NAMES[d] for d in sorted(weekdays) if 0 <= d < 7)
            return f"weekly ({names or 'never'})"
        case EveryNDays(interval_days=interval):
            return f"every {interval} days"
        case MonthlyByDate(day=day):
            return f"monthly on day {day}"
        case MonthlyByWeekday(weekday=weekday, occurrence=occurrence):
            which = "last" if occurrence == LAST_OCCURRENCE else f"#{occurrence}"
            return f"monthly on {which} {calendar.day_name[weekday % 7]}"
        case Yearly(month=month, day=day):
            return f"yearly on {calendar.month_abbr[month % 13]} {day}"
        case Weekdays():
            return "weekdays"
        case _:
            return "ad hoc"
