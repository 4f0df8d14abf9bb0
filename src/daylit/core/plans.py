"""Day plan data model - no I/O dependencies."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from .clock import parse_time


class SlotStatus(str, Enum):
    PLANNED = "planned"
    ACCEPTED = "accepted"
    DONE = "done"
    SKIPPED = "skipped"


class FeedbackRating(str, Enum):
    ON_TRACK = "on_track"
    TOO_MUCH = "too_much"
    UNNECESSARY = "unnecessary"


@dataclass
class Feedback:
    rating: FeedbackRating
    note: str = ""


@dataclass
class Slot:
    """One task occupying [start, end) of a plan's day."""

    start: str
    end: str
    task_id: str
    status: SlotStatus = SlotStatus.PLANNED
    feedback: Feedback | None = None
    deleted_at: str | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def duration_minutes(self) -> int | None:
        """Slot length in minutes, or None if either bound is malformed."""
        try:
            return parse_time(self.end) - parse_time(self.start)
        except ValueError:
            return None

    @classmethod
    def from_dict(cls, data: dict) -> "Slot":
        feedback = None
        if data.get("feedback"):
            feedback = Feedback(
                rating=FeedbackRating(data["feedback"]["rating"]),
                note=data["feedback"].get("note", ""),
            )
        return cls(
            start=data["start"],
            end=data["end"],
            task_id=data["task_id"],
            status=SlotStatus(data.get("status", "planned")),
            feedback=feedback,
            deleted_at=data.get("deleted_at"),
        )

    def to_dict(self) -> dict:
        data = {
            "start": self.start,
            "end": self.end,
            "task_id": self.task_id,
            "status": self.status.value,
            "deleted_at": self.deleted_at,
        }
        if self.feedback:
            data["feedback"] = {"rating": self.feedback.rating.value, "note": self.feedback.note}
        return data


@dataclass
class DayPlan:
    """
    One date's schedule.

    revision 0 means the plan has not been saved yet; the store assigns
    revision numbers. unscheduled lists due tasks that did not fit.
    """

    date: str
    slots: list[Slot] = field(default_factory=list)
    revision: int = 0
    accepted_at: str | None = None
    deleted_at: str | None = None
    unscheduled: list[str] = field(default_factory=list)

    @property
    def is_accepted(self) -> bool:
        return self.accepted_at is not None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def live_slots(self) -> list[Slot]:
        return [s for s in self.slots if not s.is_deleted]

    def accept(self, now: datetime | None = None) -> "DayPlan":
        """Return an accepted copy with every slot marked accepted."""
        now = now or datetime.now(timezone.utc)
        return replace(
            self,
            slots=[replace(s, status=SlotStatus.ACCEPTED) for s in self.slots],
            accepted_at=now.strftime("%Y-%m-%dT%H:%M:%SZ"),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "DayPlan":
        return cls(
            date=data["date"],
            slots=[Slot.from_dict(s) for s in data.get("slots", [])],
            revision=int(data.get("revision", 0)),
            accepted_at=data.get("accepted_at"),
            deleted_at=data.get("deleted_at"),
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "revision": self.revision,
            "accepted_at": self.accepted_at,
            "deleted_at": self.deleted_at,
            "slots": [s.to_dict() for s in self.slots],
        }
