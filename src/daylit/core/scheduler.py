"""Time-block allocation - builds a day plan from the task catalog."""

import logging

from .clock import FreeIntervals, Interval, format_time, parse_date, parse_time
from .plans import DayPlan, Slot, SlotStatus
from .recurrence import is_due, lateness
from .tasks import Task, active_tasks

logger = logging.getLogger(__name__)


class PlanningError(ValueError):
    """Raised when the plan date or day boundaries are malformed."""


def _optional_time(value: str) -> int | None:
    """Parse an optional HH:MM bound; empty or malformed means unset."""
    if not value:
        return None
    try:
        return parse_time(value)
    except ValueError:
        return None


def fits_interval(task: Task, block: Interval) -> bool:
    """First-pass check: long enough and not entirely outside the task's window."""
    if task.duration_min < 0 or task.duration_min > block.length:
        return False

    earliest = _optional_time(task.earliest_start)
    if earliest is not None and block.end <= earliest:
        return False

    latest = _optional_time(task.latest_end)
    if latest is not None and block.start >= latest:
        return False

    return True


def place_in_interval(task: Task, block: Interval) -> Interval | None:
    """Pick [start, end) for the task inside block, or None if the bounds don't allow it."""
    start = block.start
    earliest = _optional_time(task.earliest_start)
    if earliest is not None and earliest > start:
        start = earliest

    end = start + task.duration_min

    latest = _optional_time(task.latest_end)
    if latest is not None and end > latest:
        return None
    if end > block.end:
        return None

    return Interval(start, end)


def generate_plan(plan_date: str, tasks: list[Task], day_start: str, day_end: str) -> DayPlan:
    """
    Generate a day plan for the given date.

    Fixed appointments are placed verbatim, even if they overlap each other.
    Due flexible tasks are then packed first-fit into the remaining free
    time, by priority and then lateness. Tasks that fit nowhere are left out
    of the slots and listed in DayPlan.unscheduled.

    Pure function - no I/O.

    Raises:
        PlanningError: if plan_date, day_start or day_end is malformed.
    """
    try:
        target = parse_date(plan_date)
    except ValueError as e:
        raise PlanningError(f"invalid date format: {e}") from e
    try:
        start_min = parse_time(day_start)
    except ValueError as e:
        raise PlanningError(f"invalid day start time: {e}") from e
    try:
        end_min = parse_time(day_end)
    except ValueError as e:
        raise PlanningError(f"invalid day end time: {e}") from e

    fixed: list[Task] = []
    flexible: list[Task] = []
    for task in active_tasks(tasks):
        if task.is_fixed:
            fixed.append(task)
        else:
            # Includes appointments missing one fixed time
            flexible.append(task)

    fixed_slots = [
        Slot(start=t.fixed_start, end=t.fixed_end, task_id=t.id, status=SlotStatus.PLANNED)
        for t in fixed
        if is_due(t, target)
    ]
    fixed_slots.sort(key=lambda s: s.start)

    busy = []
    for slot in fixed_slots:
        try:
            busy.append(Interval(parse_time(slot.start), parse_time(slot.end)))
        except ValueError:
            logger.warning(f"Ignoring malformed appointment {slot.task_id} ({slot.start}-{slot.end}) for free time")
    free = FreeIntervals.between(start_min, end_min, busy)

    candidates = [t for t in flexible if is_due(t, target)]
    # Two stable sorts: lateness desc, then priority asc
    candidates.sort(key=lambda t: lateness(t, target), reverse=True)
    candidates.sort(key=lambda t: t.priority)

    placed_slots = []
    unscheduled = []
    for task in candidates:
        for index, block in enumerate(free):
            if not fits_interval(task, block):
                continue
            span = place_in_interval(task, block)
            if span is None:
                continue
            free = free.place(index, span.start, span.end)
            placed_slots.append(
                Slot(
                    start=format_time(span.start),
                    end=format_time(span.end),
                    task_id=task.id,
                    status=SlotStatus.PLANNED,
                )
            )
            break
        else:
            unscheduled.append(task.id)

    if unscheduled:
        logger.info(f"{plan_date}: {len(unscheduled)} task(s) did not fit: {', '.join(unscheduled)}")

    slots = sorted(fixed_slots + placed_slots, key=lambda s: s.start)
    logger.debug(f"{plan_date}: planned {len(slots)} slot(s), {free.total_minutes} min left free")
    return DayPlan(date=plan_date, slots=slots, unscheduled=unscheduled)
