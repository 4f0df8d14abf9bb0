"""Shared workflow layer between the CLI and the functional core.

Each function loads what it needs from the store, runs the pure core,
and persists the result where there is one.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .adapters.json_store import JsonFileStore, StoreError
from .config import Config
from .core.autofix import FixAction, auto_fix_duplicate_tasks
from .core.clock import parse_date
from .core.feedback import FeedbackError, adjust_task, current_slot, find_feedback_slot, rate_slot
from .core.plans import DayPlan, FeedbackRating, Slot
from .core.scheduler import generate_plan
from .core.tasks import Task
from .core.validation import Conflict, validate_plan, validate_tasks
from .ports.plan_store import PlannerStore

logger = logging.getLogger(__name__)


@dataclass
class Proposal:
    """A freshly generated plan plus everything the user should see before accepting it."""

    plan: DayPlan
    existing: DayPlan | None
    conflicts: list[Conflict] = field(default_factory=list)


def get_store(config: Config) -> JsonFileStore:
    """Resolve the store from config."""
    return JsonFileStore(config.store_path)


def propose_plan(store: PlannerStore, plan_date: str) -> Proposal:
    """Generate (but don't save) a plan for the date and validate it against the catalog."""
    settings = store.get_settings()
    tasks = store.get_all_tasks()

    plan = generate_plan(plan_date, tasks, settings.day_start, settings.day_end)
    conflicts = validate_tasks(tasks, parse_date(plan_date)) + validate_plan(
        plan, tasks, settings.day_start, settings.day_end
    )

    return Proposal(plan=plan, existing=store.get_plan(plan_date), conflicts=conflicts)


def accept_plan(store: PlannerStore, plan: DayPlan) -> DayPlan:
    """Mark a plan accepted and save it as the next revision."""
    saved = store.save_plan(plan.accept())
    logger.info(f"Accepted plan for {saved.date} as revision {saved.revision}")
    return saved


def validate_all(store: PlannerStore, plan_date: str) -> list[Conflict]:
    """Validate the catalog, scoped to plan_date, and the saved plan for that date if any."""
    settings = store.get_settings()
    tasks = store.get_all_tasks()

    conflicts = validate_tasks(tasks, parse_date(plan_date))
    plan = store.get_plan(plan_date)
    if plan and plan.slots:
        conflicts += validate_plan(plan, tasks, settings.day_start, settings.day_end)
    return conflicts


def fix_duplicates(store: PlannerStore, conflicts: list[Conflict]) -> list[FixAction]:
    """Soft-delete duplicate tasks named in the conflicts."""
    return auto_fix_duplicate_tasks(conflicts, store.get_all_tasks(), store.delete_task)


@dataclass
class FeedbackResult:
    """The rated slot and its task after adjustment (None if the task is gone)."""

    slot: Slot
    task: Task | None


def _minutes(now: datetime) -> int:
    return now.hour * 60 + now.minute


def record_feedback(
    store: PlannerStore,
    rating: FeedbackRating,
    note: str = "",
    now: datetime | None = None,
) -> FeedbackResult:
    """
    Rate the most recent finished slot of today's plan.

    The slot is marked done and the task is adjusted for the rating. The
    plan keeps its revision: feedback is recorded in place even when the
    plan is accepted.

    Raises:
        FeedbackError: if there is no plan today or no finished slot left to rate.
    """
    now = now or datetime.now()
    plan_date = now.date().isoformat()

    plan = store.get_plan(plan_date)
    if plan is None:
        raise FeedbackError("no plan found for today")

    index = find_feedback_slot(plan, _minutes(now))
    if index is None:
        raise FeedbackError("no past slot found without feedback")

    slot = rate_slot(plan.slots[index], rating, note)

    try:
        task = store.get_task(slot.task_id)
    except StoreError:
        logger.warning(f"Feedback for {slot.start}-{slot.end} refers to missing task {slot.task_id}")
        task = None
    if task is not None:
        task = adjust_task(task, slot, rating, now.date())
        store.update_task(task)

    store.record_slot_feedback(plan.date, plan.revision, slot)
    logger.info(f"Recorded {slot.feedback.rating.value} feedback for {plan_date} {slot.start}-{slot.end}")
    return FeedbackResult(slot=slot, task=task)


def current_activity(store: PlannerStore, now: datetime | None = None) -> tuple[DayPlan | None, Slot | None]:
    """Today's plan and the slot planned for right now."""
    now = now or datetime.now()
    plan = store.get_plan(now.date().isoformat())
    if plan is None:
        return None, None
    return plan, current_slot(plan, _minutes(now))
