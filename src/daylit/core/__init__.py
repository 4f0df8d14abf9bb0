"""Functional core - pure business logic with no I/O."""

from .autofix import FixAction, auto_fix_duplicate_tasks
from .clock import FreeIntervals, Interval, format_time, parse_date, parse_time, times_overlap
from .feedback import FeedbackError, adjust_task, find_feedback_slot, rate_slot
from .plans import DayPlan, Feedback, FeedbackRating, Slot, SlotStatus
from .recurrence import (
    AdHoc,
    Daily,
    EveryNDays,
    MonthlyByDate,
    MonthlyByWeekday,
    Recurrence,
    Weekdays,
    Weekly,
    Yearly,
    is_due,
    lateness,
)
from .scheduler import PlanningError, generate_plan
from .tasks import Task, TaskKind
from .validation import Conflict, ConflictType, format_report, validate_plan, validate_tasks

__all__ = [
    # Time
    "FreeIntervals",
    "Interval",
    "format_time",
    "parse_date",
    "parse_time",
    "times_overlap",
    # Tasks
    "Task",
    "TaskKind",
    # Recurrence
    "Recurrence",
    "Daily",
    "Weekly",
    "EveryNDays",
    "AdHoc",
    "MonthlyByDate",
    "MonthlyByWeekday",
    "Yearly",
    "Weekdays",
    "is_due",
    "lateness",
    # Plans
    "DayPlan",
    "Slot",
    "SlotStatus",
    "Feedback",
    "FeedbackRating",
    "PlanningError",
    "generate_plan",
    # Validation
    "Conflict",
    "ConflictType",
    "format_report",
    "validate_tasks",
    "validate_plan",
    "FixAction",
    "auto_fix_duplicate_tasks",
    # Feedback
    "FeedbackError",
    "adjust_task",
    "find_feedback_slot",
    "rate_slot",
]
