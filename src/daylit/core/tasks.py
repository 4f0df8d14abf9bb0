"""Pure task domain logic - no I/O dependencies."""

from dataclasses import dataclass, field
from enum import Enum

from .clock import parse_time
from .recurrence import Daily, Recurrence, recurrence_from_dict, recurrence_to_dict


class TaskKind(str, Enum):
    APPOINTMENT = "appointment"
    FLEXIBLE = "flexible"


@dataclass
class Task:
    """
    A thing that may occupy time in a day plan.

    Appointments have a fixed wall-clock interval; flexible tasks only a
    duration and are placed wherever they fit.
    """

    id: str
    name: str
    kind: TaskKind = TaskKind.FLEXIBLE
    duration_min: int = 30
    earliest_start: str = ""
    latest_end: str = ""
    fixed_start: str = ""
    fixed_end: str = ""
    recurrence: Recurrence = field(default_factory=Daily)
    priority: int = 3
    active: bool = True
    last_done: str = ""
    avg_actual_duration_min: float = 0.0
    deleted_at: str | None = None

    def __post_init__(self):
        self.kind = TaskKind(self.kind)
        # Appointments take their duration from the fixed interval
        if self.kind == TaskKind.APPOINTMENT and self.fixed_start and self.fixed_end:
            try:
                start, end = parse_time(self.fixed_start), parse_time(self.fixed_end)
            except ValueError:
                return
            if end >= start:
                self.duration_min = end - start

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_fixed(self) -> bool:
        """Appointment with both fixed times set. Anything else is scheduled flexibly."""
        return self.kind == TaskKind.APPOINTMENT and bool(self.fixed_start) and bool(self.fixed_end)

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create Task from its stored JSON form."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            kind=TaskKind(data.get("kind", "flexible") or "flexible"),
            duration_min=int(data.get("duration_min", 30)),
            earliest_start=data.get("earliest_start", ""),
            latest_end=data.get("latest_end", ""),
            fixed_start=data.get("fixed_start", ""),
            fixed_end=data.get("fixed_end", ""),
            recurrence=recurrence_from_dict(data.get("recurrence")),
            priority=int(data.get("priority", 3)),
            active=bool(data.get("active", True)),
            last_done=data.get("last_done", "") or "",
            avg_actual_duration_min=float(data.get("avg_actual_duration_min") or 0.0),
            deleted_at=data.get("deleted_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "duration_min": self.duration_min,
            "earliest_start": self.earliest_start,
            "latest_end": self.latest_end,
            "fixed_start": self.fixed_start,
            "fixed_end": self.fixed_end,
            "recurrence": recurrence_to_dict(self.recurrence),
            "priority": self.priority,
            "active": self.active,
            "last_done": self.last_done,
            "avg_actual_duration_min": self.avg_actual_duration_min,
            "deleted_at": self.deleted_at,
        }


def live_tasks(tasks: list[Task]) -> list[Task]:
    """Filter out soft-deleted tasks."""
    return [t for t in tasks if not t.is_deleted]


def active_tasks(tasks: list[Task]) -> list[Task]:
    """Tasks that are neither deleted nor deactivated."""
    return [t for t in tasks if t.active and not t.is_deleted]


def sort_by_priority(tasks: list[Task]) -> list[Task]:
    """Sort tasks by priority (ascending, 1 first) then name."""
    return sorted(tasks, key=lambda t: (t.priority, t.name))
