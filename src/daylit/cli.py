"""daylit CLI - daily planner."""

import json
import logging
import sys
import uuid
from dataclasses import replace
from datetime import date, datetime

import click

from .adapters.json_store import StoreError
from .config import load_config
from .core.clock import is_valid_time, parse_date
from .core.feedback import FeedbackError
from .core.plans import DayPlan, FeedbackRating
from .core.recurrence import (
    LAST_OCCURRENCE,
    WEEKDAY_NAMES,
    AdHoc,
    Daily,
    EveryNDays,
    MonthlyByDate,
    MonthlyByWeekday,
    Recurrence,
    Weekdays,
    Weekly,
    Yearly,
    describe,
)
from .core.scheduler import PlanningError
from .core.tasks import Task, TaskKind, sort_by_priority
from .core.validation import format_report
from .ports.plan_store import Settings
from .workflows import (
    accept_plan,
    current_activity,
    fix_duplicates,
    get_store,
    propose_plan,
    record_feedback,
    validate_all,
)

RECURRENCE_TYPES = ["daily", "weekly", "n_days", "ad_hoc", "monthly_date", "monthly_day", "yearly", "weekdays"]
# Types that need no monthly or yearly fields
EDITABLE_RECURRENCE_TYPES = ["daily", "weekly", "n_days", "ad_hoc", "weekdays"]


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _resolve_date(value: str | None) -> str:
    """Turn 'today', None or YYYY-MM-DD into a YYYY-MM-DD string."""
    if not value or value == "today":
        return date.today().isoformat()
    try:
        return parse_date(value).isoformat()
    except ValueError:
        raise click.BadParameter(f"invalid date {value!r}, use YYYY-MM-DD or 'today'") from None


def _check_times(*options: tuple[str, str | None]) -> None:
    """Reject option values that are set but not HH:MM. Empty clears a time."""
    for label, value in options:
        if value and not is_valid_time(value):
            raise click.BadParameter(f"{label} must be HH:MM, got {value!r}")


def _parse_weekdays(value: str) -> frozenset[int]:
    days = set()
    for part in value.split(","):
        part = part.strip().lower()[:3]
        if not part:
            continue
        if part not in WEEKDAY_NAMES:
            raise click.BadParameter(f"unknown weekday {part!r}, use mon..sun")
        days.add(WEEKDAY_NAMES.index(part))
    return frozenset(days)


def _build_recurrence(
    kind: str,
    weekdays: str,
    interval: int,
    month_day: int | None,
    weekday: str | None,
    occurrence: int | None,
    month: int | None,
) -> Recurrence:
    match kind:
        case "daily":
            return Daily()
        case "weekly":
            return Weekly(_parse_weekdays(weekdays))
        case "n_days":
            return EveryNDays(interval)
        case "monthly_date":
            if not month_day:
                raise click.BadParameter("--month-day is required for monthly_date")
            return MonthlyByDate(month_day)
        case "monthly_day":
            if weekday is None or occurrence is None:
                raise click.BadParameter("--weekday and --occurrence are required for monthly_day")
            days = _parse_weekdays(weekday)
            if len(days) != 1:
                raise click.BadParameter("--weekday takes exactly one day for monthly_day")
            return MonthlyByWeekday(min(days), occurrence)
        case "yearly":
            if not month or not month_day:
                raise click.BadParameter("--month and --month-day are required for yearly")
            return Yearly(month, month_day)
        case "weekdays":
            return Weekdays()
        case _:
            return AdHoc()


def _slot_lines(plan: DayPlan, names: dict[str, str]) -> list[str]:
    return [
        f"{slot.start}–{slot.end}  {names.get(slot.task_id, '(unknown task)')}"
        for slot in plan.slots
    ]


@click.group()
@click.version_option(package_name="daylit")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """daylit - daily planner CLI."""
    config = load_config()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else getattr(logging, config.log_level, logging.WARNING),
    )


@main.command()
def init():
    """Create an empty task store."""
    config = load_config()
    store = get_store(config)
    try:
        store.init(
            Settings(
                day_start=config.day_start,
                day_end=config.day_end,
                default_block_min=config.default_block_min,
            )
        )
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Initialized store at {store.path}")


# ============== Tasks ==============


@main.group()
def task():
    """Manage the task catalog."""


@task.command("add")
@click.argument("name")
@click.option("--duration", type=click.IntRange(min=1), default=None, help="Duration in minutes (flexible tasks)")
@click.option("--kind", type=click.Choice([k.value for k in TaskKind]), default="flexible")
@click.option("--fixed-start", default="", help="HH:MM start (appointments)")
@click.option("--fixed-end", default="", help="HH:MM end (appointments)")
@click.option("--earliest", default="", help="Earliest HH:MM start")
@click.option("--latest", default="", help="Latest HH:MM end")
@click.option("--priority", type=click.IntRange(1, 5), default=3)
@click.option("--recurrence", "recurrence_type", type=click.Choice(RECURRENCE_TYPES), default="daily")
@click.option("--weekdays", default="", help="Comma-separated days for weekly, e.g. mon,wed")
@click.option("--interval", type=click.IntRange(min=1), default=1, help="Days between runs for n_days")
@click.option("--month-day", type=click.IntRange(1, 31), default=None)
@click.option("--weekday", default=None, help="Weekday for monthly_day, e.g. fri")
@click.option("--occurrence", type=click.IntRange(LAST_OCCURRENCE, 5), default=None, help="1-5, or -1 for last")
@click.option("--month", type=click.IntRange(1, 12), default=None)
@click.option("--last-done", default="", help="YYYY-MM-DD the task was last done")
def task_add(
    name: str,
    duration: int | None,
    kind: str,
    fixed_start: str,
    fixed_end: str,
    earliest: str,
    latest: str,
    priority: int,
    recurrence_type: str,
    weekdays: str,
    interval: int,
    month_day: int | None,
    weekday: str | None,
    occurrence: int | None,
    month: int | None,
    last_done: str,
):
    """Add a task."""
    _check_times(
        ("--fixed-start", fixed_start),
        ("--fixed-end", fixed_end),
        ("--earliest", earliest),
        ("--latest", latest),
    )
    if occurrence == 0:
        raise click.BadParameter("--occurrence must be 1-5 or -1")
    if last_done:
        last_done = _resolve_date(last_done)

    config = load_config()
    store = get_store(config)
    try:
        if duration is None:
            duration = store.get_settings().default_block_min
        new_task = Task(
            id=str(uuid.uuid4()),
            name=name,
            kind=TaskKind(kind),
            duration_min=duration,
            earliest_start=earliest,
            latest_end=latest,
            fixed_start=fixed_start,
            fixed_end=fixed_end,
            recurrence=_build_recurrence(recurrence_type, weekdays, interval, month_day, weekday, occurrence, month),
            priority=priority,
            last_done=last_done,
        )
        store.add_task(new_task)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Added task {new_task.name} ({new_task.id})")


@task.command("edit")
@click.argument("task_id")
@click.option("--name", default=None, help="New task name")
@click.option("--duration", type=click.IntRange(min=1), default=None, help="New duration in minutes")
@click.option("--recurrence", "recurrence_type", type=click.Choice(EDITABLE_RECURRENCE_TYPES), default=None)
@click.option("--interval", type=click.IntRange(min=1), default=None, help="New interval for n_days")
@click.option("--weekdays", default=None, help="New comma-separated days for weekly")
@click.option("--earliest", default=None, help="New earliest HH:MM start")
@click.option("--latest", default=None, help="New latest HH:MM end")
@click.option("--fixed-start", default=None, help="New fixed HH:MM start")
@click.option("--fixed-end", default=None, help="New fixed HH:MM end")
@click.option("--priority", type=click.IntRange(1, 5), default=None)
@click.option("--active/--inactive", default=None, help="Include in or leave out of planning")
def task_edit(
    task_id: str,
    name: str | None,
    duration: int | None,
    recurrence_type: str | None,
    interval: int | None,
    weekdays: str | None,
    earliest: str | None,
    latest: str | None,
    fixed_start: str | None,
    fixed_end: str | None,
    priority: int | None,
    active: bool | None,
):
    """Edit a task. Setting both fixed times makes it an appointment."""
    _check_times(
        ("--earliest", earliest),
        ("--latest", latest),
        ("--fixed-start", fixed_start),
        ("--fixed-end", fixed_end),
    )

    store = get_store(load_config())
    try:
        current = store.get_task(task_id)
    except StoreError as e:
        _fail(str(e))

    changes = {
        key: value
        for key, value in (
            ("name", name),
            ("duration_min", duration),
            ("earliest_start", earliest),
            ("latest_end", latest),
            ("fixed_start", fixed_start),
            ("fixed_end", fixed_end),
            ("priority", priority),
            ("active", active),
        )
        if value is not None
    }

    if recurrence_type:
        changes["recurrence"] = _build_recurrence(
            recurrence_type, weekdays or "", interval or 1, None, None, None, None
        )
    elif interval is not None or weekdays is not None:
        match current.recurrence:
            case EveryNDays() if interval is not None and weekdays is None:
                changes["recurrence"] = EveryNDays(interval)
            case Weekly() if weekdays is not None and interval is None:
                changes["recurrence"] = Weekly(_parse_weekdays(weekdays))
            case _:
                raise click.BadParameter("--interval only applies to n_days tasks and --weekdays to weekly tasks")

    updated = replace(current, **changes)
    kind = TaskKind.APPOINTMENT if updated.fixed_start and updated.fixed_end else TaskKind.FLEXIBLE
    updated = replace(updated, kind=kind)

    try:
        store.update_task(updated)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Task updated: {updated.name}")


@task.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--deleted", is_flag=True, help="Include deleted tasks")
def task_list(as_json: bool, deleted: bool):
    """List tasks."""
    store = get_store(load_config())
    try:
        tasks = store.get_all_tasks_including_deleted() if deleted else store.get_all_tasks()
    except StoreError as e:
        _fail(str(e))

    tasks = sort_by_priority(tasks)
    if as_json:
        click.echo(json.dumps([t.to_dict() for t in tasks], indent=2))
        return

    if not tasks:
        click.echo("No tasks.")
        return

    for t in tasks:
        when = f"{t.fixed_start}-{t.fixed_end}" if t.is_fixed else f"{t.duration_min}m"
        flags = "" if t.active else " [inactive]"
        if t.is_deleted:
            flags += " [deleted]"
        click.echo(f"[P{t.priority}] {t.name} ({when}, {describe(t.recurrence)}){flags}  {t.id}")


@task.command("delete")
@click.argument("task_id")
def task_delete(task_id: str):
    """Soft-delete a task."""
    store = get_store(load_config())
    try:
        store.delete_task(task_id)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Deleted task {task_id}")


@task.command("restore")
@click.argument("task_id")
def task_restore(task_id: str):
    """Restore a deleted task."""
    store = get_store(load_config())
    try:
        store.restore_task(task_id)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Restored task {task_id}")


# ============== Plans ==============


@main.command()
@click.argument("target_date", required=False, default="today")
@click.option("--new-revision", is_flag=True, help="Create a new revision when an accepted plan exists")
@click.option("--yes", "-y", is_flag=True, help="Accept without prompting")
def plan(target_date: str, new_revision: bool, yes: bool):
    """Generate a plan for a date (YYYY-MM-DD or 'today')."""
    plan_date = _resolve_date(target_date)
    store = get_store(load_config())

    try:
        proposal = propose_plan(store, plan_date)
        names = {t.id: t.name for t in store.get_all_tasks()}
    except (StoreError, PlanningError) as e:
        _fail(str(e))

    existing = proposal.existing
    if existing and existing.slots:
        if existing.is_accepted:
            if not new_revision:
                click.echo(f"An accepted plan already exists for {plan_date} (revision {existing.revision}).")
                click.echo(f"To create a new revision, use: daylit plan {plan_date} --new-revision")
                return
            click.echo(f"Creating new revision of plan for {plan_date} (will be revision {existing.revision + 1})\n")
        elif not yes and not click.confirm(
            f"A plan already exists for {plan_date} (revision {existing.revision}, not accepted). Replace it?"
        ):
            click.echo("Plan generation cancelled.")
            return

    click.echo(f"Proposed plan for {plan_date}:\n")
    lines = _slot_lines(proposal.plan, names)
    click.echo("\n".join(lines) if lines else "  No tasks scheduled for this day")

    if proposal.plan.unscheduled:
        click.echo("\nDid not fit:")
        for task_id in proposal.plan.unscheduled:
            click.echo(f"  - {names.get(task_id, task_id)}")

    if proposal.conflicts:
        click.echo("\nValidation warnings:")
        for conflict in proposal.conflicts:
            click.echo(f"  - {conflict.description}")

    if not yes and not click.confirm("\nAccept this plan?"):
        click.echo("Plan discarded. You can modify tasks and regenerate.")
        return

    try:
        saved = accept_plan(store, proposal.plan)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Plan accepted and saved as revision {saved.revision}!")


@main.command()
@click.argument("target_date", required=False, default="today")
@click.option("--revision", type=int, default=None, help="Show a specific revision")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(target_date: str, revision: int | None, as_json: bool):
    """Show the saved plan for a date."""
    plan_date = _resolve_date(target_date)
    store = get_store(load_config())
    try:
        saved = store.get_plan_revision(plan_date, revision) if revision else store.get_plan(plan_date)
        names = {t.id: t.name for t in store.get_all_tasks()}
    except StoreError as e:
        _fail(str(e))

    if saved is None:
        click.echo(f"No plan for {plan_date}.")
        return

    if as_json:
        click.echo(json.dumps(saved.to_dict(), indent=2))
        return

    state = "accepted" if saved.is_accepted else "draft"
    click.echo(f"Plan for {plan_date} (revision {saved.revision}, {state})\n")
    click.echo("\n".join(_slot_lines(saved, names)) or "  No slots")


@main.command("plan-delete")
@click.argument("target_date")
def plan_delete(target_date: str):
    """Soft-delete the plan for a date."""
    plan_date = _resolve_date(target_date)
    store = get_store(load_config())
    try:
        store.delete_plan(plan_date)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Deleted plan for {plan_date}")


@main.command("plan-restore")
@click.argument("target_date")
def plan_restore(target_date: str):
    """Restore a deleted plan."""
    plan_date = _resolve_date(target_date)
    store = get_store(load_config())
    try:
        store.restore_plan(plan_date)
    except StoreError as e:
        _fail(str(e))
    click.echo(f"Restored plan for {plan_date}")


@main.command()
@click.option("--rating", type=click.Choice([r.value for r in FeedbackRating]), required=True)
@click.option("--note", default="", help="Optional note")
def feedback(rating: str, note: str):
    """Rate the most recent finished slot of today's plan."""
    store = get_store(load_config())
    try:
        result = record_feedback(store, FeedbackRating(rating), note)
    except (StoreError, FeedbackError) as e:
        _fail(str(e))

    name = result.task.name if result.task else "Unknown task"
    click.echo(f"Feedback recorded for: {result.slot.start}–{result.slot.end}  {name}")


@main.command()
def now():
    """Show what today's plan has scheduled right now."""
    store = get_store(load_config())
    moment = datetime.now()
    try:
        plan, slot = current_activity(store, moment)
        names = {t.id: t.name for t in store.get_all_tasks()}
    except StoreError as e:
        _fail(str(e))

    clock = moment.strftime("%H:%M")
    if plan is None:
        click.echo("No active plan for today.")
    elif slot is None:
        click.echo(f"Now ({clock}): Free time")
    else:
        click.echo(f"Now ({clock}): You planned to be doing:\n")
        click.echo(f"{slot.start}–{slot.end}  {names.get(slot.task_id, '(unknown task)')}")


# ============== Validation ==============


@main.command()
@click.option("--date", "-d", "target_date", default="today", help="Date to validate (YYYY-MM-DD)")
@click.option("--fix", is_flag=True, help="Automatically fix conflicts where possible (duplicate tasks)")
def validate(target_date: str, fix: bool):
    """Check tasks and the day's plan for conflicts."""
    plan_date = _resolve_date(target_date)
    store = get_store(load_config())

    try:
        conflicts = validate_all(store, plan_date)

        if fix:
            click.echo("Auto-fixing conflicts...")
            actions = fix_duplicates(store, conflicts)
            if actions:
                click.echo("\nActions taken:")
                for action in actions:
                    mark = "✓" if action.succeeded else "✗"
                    click.echo(f"{mark} {action.action}")
                click.echo("\nRe-validating after fixes...")
                conflicts = validate_all(store, plan_date)
            else:
                click.echo("No fixable conflicts found.")
    except StoreError as e:
        _fail(str(e))

    click.echo()
    click.echo(format_report(conflicts))


# ============== Settings ==============


@main.command()
@click.option("--day-start", default=None, help="Start of the waking window, HH:MM")
@click.option("--day-end", default=None, help="End of the waking window, HH:MM")
@click.option("--default-block-min", type=click.IntRange(min=1), default=None, help="Default task duration")
def settings(day_start: str | None, day_end: str | None, default_block_min: int | None):
    """Show or change the stored planning settings."""
    _check_times(("--day-start", day_start), ("--day-end", day_end))

    store = get_store(load_config())
    try:
        current = store.get_settings()
        changes = {
            key: value
            for key, value in (
                ("day_start", day_start),
                ("day_end", day_end),
                ("default_block_min", default_block_min),
            )
            if value
        }
        if changes:
            current = replace(current, **changes)
            store.save_settings(current)
            click.echo("Settings updated.")
    except StoreError as e:
        _fail(str(e))

    click.echo(f"Day start:          {current.day_start}")
    click.echo(f"Day end:            {current.day_end}")
    click.echo(f"Default block min:  {current.default_block_min}")


if __name__ == "__main__":
    main()
