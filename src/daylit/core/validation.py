"""Conflict detection for the task catalog and day plans - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .clock import is_valid_time, parse_date, parse_time, times_overlap
from .plans import DayPlan
from .recurrence import is_due, recurrences_coincide
from .tasks import Task, TaskKind

OVERCOMMIT_PERCENT = 80


class ConflictType(str, Enum):
    OVERLAPPING_FIXED_TASKS = "overlapping_fixed_tasks"
    OVERLAPPING_SLOTS = "overlapping_slots"
    EXCEEDS_WAKING_WINDOW = "exceeds_waking_window"
    OVERCOMMITTED = "overcommitted"
    MISSING_TASK_ID = "missing_task_id"
    DUPLICATE_TASK_NAME = "duplicate_task_name"
    INVALID_DATETIME = "invalid_datetime"


@dataclass
class Conflict:
    """A detected problem in the catalog or a plan."""

    type: ConflictType
    description: str
    date: str = ""
    items: list[str] = field(default_factory=list)
    time_range: str = ""
    task_ids: list[str] = field(default_factory=list)


def format_report(conflicts: list[Conflict]) -> str:
    """Human-readable report of all conflicts."""
    if not conflicts:
        return "No conflicts detected."
    lines = ["Conflicts detected:"]
    lines.extend(f"- {c.description}" for c in conflicts)
    return "\n".join(lines)


def _check_time_fields(task: Task) -> list[Conflict]:
    conflicts = []
    for label, value in (
        ("earliest_start", task.earliest_start),
        ("latest_end", task.latest_end),
        ("fixed_start", task.fixed_start),
        ("fixed_end", task.fixed_end),
    ):
        if value and not is_valid_time(value):
            conflicts.append(
                Conflict(
                    type=ConflictType.INVALID_DATETIME,
                    description=f'Task "{task.name}" has invalid {label} time: {value}',
                    items=[task.name],
                    task_ids=[task.id],
                )
            )

    if task.fixed_start and task.fixed_end:
        if is_valid_time(task.fixed_start) and is_valid_time(task.fixed_end):
            if parse_time(task.fixed_end) < parse_time(task.fixed_start):
                conflicts.append(
                    Conflict(
                        type=ConflictType.INVALID_DATETIME,
                        description=(
                            f'Task "{task.name}" has end time ({task.fixed_end}) '
                            f"before start time ({task.fixed_start})"
                        ),
                        items=[task.name],
                        task_ids=[task.id],
                    )
                )
    return conflicts


def validate_tasks(tasks: list[Task], plan_date: date | None = None) -> list[Conflict]:
    """
    Check the task catalog for conflicts.

    If plan_date is given, appointment overlaps are only checked among
    tasks due on that date.

    Pure function - never mutates its inputs.
    """
    conflicts = []
    live = [t for t in tasks if not t.is_deleted]

    # Duplicate names, in first-seen order
    ids_by_name: dict[str, list[str]] = {}
    for task in live:
        if not task.name:
            continue
        ids_by_name.setdefault(task.name, []).append(task.id)

    for name, ids in ids_by_name.items():
        if len(ids) > 1:
            conflicts.append(
                Conflict(
                    type=ConflictType.DUPLICATE_TASK_NAME,
                    description=f'Duplicate task name: "{name}" (IDs: {", ".join(ids)})',
                    items=[name],
                    task_ids=list(ids),
                )
            )

    for task in live:
        conflicts.extend(_check_time_fields(task))

    fixed = [
        t
        for t in live
        if t.active
        and t.kind == TaskKind.APPOINTMENT
        and t.fixed_start
        and t.fixed_end
        and (plan_date is None or is_due(t, plan_date))
    ]
    fixed.sort(key=lambda t: t.fixed_start)

    # O(n^2), fine for a day's worth of appointments
    for i, t1 in enumerate(fixed):
        for t2 in fixed[i + 1 :]:
            if not times_overlap(t1.fixed_start, t1.fixed_end, t2.fixed_start, t2.fixed_end):
                continue
            if not recurrences_coincide(t1.recurrence, t2.recurrence):
                continue
            conflicts.append(
                Conflict(
                    type=ConflictType.OVERLAPPING_FIXED_TASKS,
                    description=(
                        f'Appointments overlap: "{t1.name}" ({t1.fixed_start}-{t1.fixed_end}) '
                        f'and "{t2.name}" ({t2.fixed_start}-{t2.fixed_end})'
                    ),
                    date=plan_date.isoformat() if plan_date else "",
                    items=[t1.name, t2.name],
                    time_range=f"{t1.fixed_start}-{t1.fixed_end}",
                    task_ids=[t1.id, t2.id],
                )
            )

    return conflicts


def validate_plan(plan: DayPlan, tasks: list[Task], day_start: str, day_end: str) -> list[Conflict]:
    """
    Check a day plan for conflicts.

    Pure function - never mutates its inputs.
    """
    conflicts = []
    task_map = {t.id: t for t in tasks if not t.is_deleted}

    try:
        target = parse_date(plan.date)
    except ValueError:
        # Nothing else can be checked without a date
        return [
            Conflict(
                type=ConflictType.INVALID_DATETIME,
                description=f"Invalid plan date: {plan.date}",
                date=plan.date,
            )
        ]
    day = target.strftime("%a")

    try:
        start_min = parse_time(day_start)
    except ValueError:
        start_min = 0
        conflicts.append(
            Conflict(type=ConflictType.INVALID_DATETIME, description=f"Invalid day start time: {day_start}")
        )
    try:
        end_min = parse_time(day_end)
    except ValueError:
        end_min = 0
        conflicts.append(
            Conflict(type=ConflictType.INVALID_DATETIME, description=f"Invalid day end time: {day_end}")
        )

    window = end_min - start_min
    if window <= 0:
        conflicts.append(
            Conflict(
                type=ConflictType.INVALID_DATETIME,
                description=f"Invalid waking window: day_start ({day_start}) must be before day_end ({day_end})",
            )
        )
        return conflicts

    slots = plan.live_slots()

    total = 0
    for slot in slots:
        valid = True
        for label, value in (("start", slot.start), ("end", slot.end)):
            if not is_valid_time(value):
                valid = False
                conflicts.append(
                    Conflict(
                        type=ConflictType.INVALID_DATETIME,
                        description=f"{day}: Invalid slot {label} time: {value}",
                        date=plan.date,
                        task_ids=[slot.task_id],
                    )
                )

        if slot.task_id not in task_map:
            conflicts.append(
                Conflict(
                    type=ConflictType.MISSING_TASK_ID,
                    description=f"{day}: Slot references missing task ID: {slot.task_id}",
                    date=plan.date,
                    task_ids=[slot.task_id],
                )
            )

        if not valid:
            continue

        duration = slot.duration_minutes()
        if duration < 0:
            conflicts.append(
                Conflict(
                    type=ConflictType.INVALID_DATETIME,
                    description=f"{day}: Slot end time '{slot.end}' is before start time '{slot.start}'",
                    date=plan.date,
                    task_ids=[slot.task_id],
                )
            )
            continue
        total += duration

    def name_of(task_id: str) -> str:
        task = task_map.get(task_id)
        return task.name if task else "Unknown"

    ordered = sorted(slots, key=lambda s: s.start)
    for i, s1 in enumerate(ordered):
        for s2 in ordered[i + 1 :]:
            if not times_overlap(s1.start, s1.end, s2.start, s2.end):
                continue
            n1, n2 = name_of(s1.task_id), name_of(s2.task_id)
            conflicts.append(
                Conflict(
                    type=ConflictType.OVERLAPPING_SLOTS,
                    description=f'{day}: {s1.start}-{s1.end} "{n1}" overlaps "{n2}"',
                    date=plan.date,
                    items=[n1, n2],
                    time_range=f"{s1.start}-{s1.end}",
                    task_ids=[s1.task_id, s2.task_id],
                )
            )

    scheduled_h = total / 60
    window_h = window / 60
    if total > window:
        conflicts.append(
            Conflict(
                type=ConflictType.EXCEEDS_WAKING_WINDOW,
                description=f"{day}: {scheduled_h:.1f}h scheduled exceeds {window_h:.1f}h waking window",
                date=plan.date,
            )
        )
    elif total * 100 >= window * OVERCOMMIT_PERCENT:
        conflicts.append(
            Conflict(
                type=ConflictType.OVERCOMMITTED,
                description=(
                    f"{day}: {scheduled_h:.1f}h scheduled in {window_h:.1f}h waking window "
                    f"(>={OVERCOMMIT_PERCENT}% capacity)"
                ),
                date=plan.date,
            )
        )

    return conflicts
