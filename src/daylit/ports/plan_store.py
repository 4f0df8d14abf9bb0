"""Storage interface for tasks, plans and settings."""

from dataclasses import dataclass
from typing import Protocol

from daylit.core.plans import DayPlan, Slot
from daylit.core.tasks import Task


@dataclass
class Settings:
    """Day boundaries and defaults kept alongside the data."""

    day_start: str = "07:00"
    day_end: str = "22:00"
    default_block_min: int = 30


class PlannerStore(Protocol):
    """Interface for persisting tasks and day plans in any backend."""

    def get_settings(self) -> Settings:
        ...

    def save_settings(self, settings: Settings) -> None:
        ...

    def add_task(self, task: Task) -> None:
        ...

    def get_task(self, task_id: str) -> Task:
        """Fetch a live task. Deleted tasks are not found."""
        ...

    def get_all_tasks(self) -> list[Task]:
        """Fetch all live (non-deleted) tasks."""
        ...

    def update_task(self, task: Task) -> None:
        ...

    def delete_task(self, task_id: str) -> None:
        """Soft-delete a live task."""
        ...

    def restore_task(self, task_id: str) -> None:
        """Restore a soft-deleted task."""
        ...

    def save_plan(self, plan: DayPlan) -> DayPlan:
        """Save a plan, returning it with its assigned revision."""
        ...

    def get_plan(self, plan_date: str) -> DayPlan | None:
        """Latest live revision for a date, or None."""
        ...

    def get_plan_revision(self, plan_date: str, revision: int) -> DayPlan | None:
        ...

    def delete_plan(self, plan_date: str) -> None:
        ...

    def restore_plan(self, plan_date: str) -> None:
        ...

    def record_slot_feedback(self, plan_date: str, revision: int, slot: Slot) -> None:
        """Update one slot's status and feedback, even in an accepted revision."""
        ...
