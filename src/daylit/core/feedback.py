"""Slot feedback and the task adjustments it drives - no I/O dependencies."""

from dataclasses import replace
from datetime import date

from .clock import parse_time
from .plans import DayPlan, Feedback, FeedbackRating, Slot, SlotStatus
from .recurrence import EveryNDays
from .tasks import Task

# Exponential moving average of actual durations
EXISTING_WEIGHT = 0.8
NEW_WEIGHT = 0.2

TOO_MUCH_FACTOR = 0.9
MIN_TASK_DURATION_MIN = 10

_TRACKED = (SlotStatus.ACCEPTED, SlotStatus.DONE)


class FeedbackError(ValueError):
    """Raised when there is no slot to attach feedback to."""


def _end_minutes(slot: Slot) -> int | None:
    try:
        return parse_time(slot.end)
    except ValueError:
        return None


def find_feedback_slot(plan: DayPlan, now_minutes: int) -> int | None:
    """
    Index of the most recent finished slot that has no feedback yet.

    Only accepted or done slots count. Slots with a malformed end are skipped.
    """
    for index in range(len(plan.slots) - 1, -1, -1):
        slot = plan.slots[index]
        if slot.is_deleted or slot.status not in _TRACKED or slot.feedback is not None:
            continue
        end = _end_minutes(slot)
        if end is not None and end <= now_minutes:
            return index
    return None


def current_slot(plan: DayPlan, now_minutes: int) -> Slot | None:
    """The accepted or done slot covering now_minutes, if any."""
    for slot in plan.live_slots():
        if slot.status not in _TRACKED:
            continue
        try:
            start, end = parse_time(slot.start), parse_time(slot.end)
        except ValueError:
            continue
        if start <= now_minutes < end:
            return slot
    return None


def rate_slot(slot: Slot, rating: FeedbackRating, note: str = "") -> Slot:
    """Return the slot marked done with feedback attached."""
    return replace(slot, status=SlotStatus.DONE, feedback=Feedback(rating=FeedbackRating(rating), note=note))


def adjust_task(task: Task, slot: Slot, rating: FeedbackRating, today: date) -> Task:
    """
    Return the task updated for a rated slot.

    on_track folds the slot length into the running average and marks the
    task done today. too_much shrinks the duration by 10% (never below
    MIN_TASK_DURATION_MIN) and marks it done. unnecessary stretches an
    every-N-days interval by one day and leaves last_done alone.
    """
    match FeedbackRating(rating):
        case FeedbackRating.ON_TRACK:
            avg = task.avg_actual_duration_min
            length = slot.duration_minutes()
            if length is not None and length > 0:
                if avg <= 0:
                    avg = float(length)
                else:
                    avg = avg * EXISTING_WEIGHT + length * NEW_WEIGHT
            return replace(task, avg_actual_duration_min=avg, last_done=today.isoformat())
        case FeedbackRating.TOO_MUCH:
            duration = max(int(task.duration_min * TOO_MUCH_FACTOR), MIN_TASK_DURATION_MIN)
            return replace(task, duration_min=duration, last_done=today.isoformat())
        case FeedbackRating.UNNECESSARY:
            if isinstance(task.recurrence, EveryNDays):
                return replace(task, recurrence=EveryNDays(task.recurrence.interval_days + 1))
            return task
