"""JSON file storage adapter."""

import json
import logging
from dataclasses import asdict, replace
from datetime import datetime, timezone
from pathlib import Path

from daylit.core.plans import DayPlan, Slot
from daylit.core.tasks import Task
from daylit.ports.plan_store import Settings

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class StoreError(Exception):
    """Raised when the store is missing, unreadable, or asked for an illegal transition."""


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class JsonFileStore:
    """
    Single-file JSON storage.

    Implements PlannerStore protocol. Tasks are soft-deleted and can be
    restored. Each date keeps its full list of plan revisions; an accepted
    revision is never overwritten, saving over it starts a new revision.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._data: dict | None = None

    # ---------- lifecycle ----------

    def init(self, settings: Settings | None = None) -> None:
        """Create a new, empty store file."""
        if self.path.exists():
            raise StoreError(f"storage already initialized at {self.path}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data = {
            "version": STORE_VERSION,
            "settings": asdict(settings or Settings()),
            "tasks": {},
            "plans": {},
        }
        self._save()

    def _load(self) -> dict:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            raise StoreError("storage not initialized, run 'daylit init' first")
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            raise StoreError(f"failed to parse storage {self.path}: {e}") from e
        data.setdefault("tasks", {})
        data.setdefault("plans", {})
        data.setdefault("settings", asdict(Settings()))
        self._data = data
        return data

    def _save(self) -> None:
        self.path.write_text(json.dumps(self._data, indent=2))
        self.path.chmod(0o600)
        logger.debug(f"Wrote store to {self.path}")

    # ---------- settings ----------

    def get_settings(self) -> Settings:
        return Settings(**self._load()["settings"])

    def save_settings(self, settings: Settings) -> None:
        self._load()["settings"] = asdict(settings)
        self._save()

    # ---------- tasks ----------

    def add_task(self, task: Task) -> None:
        tasks = self._load()["tasks"]
        if task.id in tasks:
            raise StoreError(f"task already exists: {task.id}")
        tasks[task.id] = task.to_dict()
        self._save()

    def _raw_task(self, task_id: str) -> dict:
        raw = self._load()["tasks"].get(task_id)
        if raw is None:
            raise StoreError(f"task not found: {task_id}")
        return raw

    def get_task(self, task_id: str) -> Task:
        raw = self._raw_task(task_id)
        if raw.get("deleted_at"):
            raise StoreError(f"task not found: {task_id}")
        return Task.from_dict(raw)

    def get_all_tasks(self) -> list[Task]:
        return [Task.from_dict(raw) for raw in self._load()["tasks"].values() if not raw.get("deleted_at")]

    def get_all_tasks_including_deleted(self) -> list[Task]:
        return [Task.from_dict(raw) for raw in self._load()["tasks"].values()]

    def update_task(self, task: Task) -> None:
        self._raw_task(task.id)
        self._load()["tasks"][task.id] = task.to_dict()
        self._save()

    def delete_task(self, task_id: str) -> None:
        raw = self._raw_task(task_id)
        if raw.get("deleted_at"):
            raise StoreError(f"task already deleted: {task_id}")
        raw["deleted_at"] = _now()
        self._save()

    def restore_task(self, task_id: str) -> None:
        raw = self._raw_task(task_id)
        if not raw.get("deleted_at"):
            raise StoreError(f"cannot restore a task that is not deleted: {task_id}")
        raw["deleted_at"] = None
        self._save()

    # ---------- plans ----------

    def _revisions(self, plan_date: str) -> list[dict]:
        return self._load()["plans"].setdefault(plan_date, [])

    def save_plan(self, plan: DayPlan) -> DayPlan:
        """
        Save a plan revision.

        revision 0 means "next": it replaces the latest revision if that one
        is still a draft, otherwise it becomes a new revision.
        """
        revisions = self._revisions(plan.date)
        latest = revisions[-1] if revisions else None

        if latest and latest.get("deleted_at"):
            raise StoreError(f"cannot save slots to a deleted plan: {plan.date}")

        if plan.revision:
            index = next((i for i, r in enumerate(revisions) if r["revision"] == plan.revision), None)
            if index is None:
                raise StoreError(f"revision {plan.revision} not found for {plan.date}")
        elif latest and not latest.get("accepted_at"):
            index = len(revisions) - 1
        else:
            index = None

        if index is not None and revisions[index].get("accepted_at"):
            raise StoreError(
                f"revision {revisions[index]['revision']} for {plan.date} is accepted; save a new revision instead"
            )

        number = revisions[index]["revision"] if index is not None else (latest["revision"] + 1 if latest else 1)
        saved = replace(plan, revision=number, slots=plan.live_slots(), unscheduled=[])

        if index is None:
            revisions.append(saved.to_dict())
        else:
            revisions[index] = saved.to_dict()
        self._save()
        logger.debug(f"Saved plan {plan.date} revision {number}")
        return saved

    def _to_live_plan(self, raw: dict) -> DayPlan:
        plan = DayPlan.from_dict(raw)
        return replace(plan, slots=plan.live_slots())

    def get_plan(self, plan_date: str) -> DayPlan | None:
        """Latest revision for the date, unless it is deleted."""
        revisions = self._load()["plans"].get(plan_date) or []
        if not revisions or revisions[-1].get("deleted_at"):
            return None
        return self._to_live_plan(revisions[-1])

    def get_plan_revision(self, plan_date: str, revision: int) -> DayPlan | None:
        for raw in self._load()["plans"].get(plan_date) or []:
            if raw["revision"] == revision and not raw.get("deleted_at"):
                return self._to_live_plan(raw)
        return None

    def delete_plan(self, plan_date: str) -> None:
        """Soft-delete the latest revision and its live slots."""
        revisions = self._load()["plans"].get(plan_date) or []
        if not revisions:
            raise StoreError(f"plan not found for date: {plan_date}")
        latest = revisions[-1]
        if latest.get("deleted_at"):
            raise StoreError(f"plan already deleted for date: {plan_date}")

        now = _now()
        latest["deleted_at"] = now
        for slot in latest["slots"]:
            if not slot.get("deleted_at"):
                slot["deleted_at"] = now
        self._save()

    def restore_plan(self, plan_date: str) -> None:
        """Undo delete_plan, leaving slots that were deleted separately alone."""
        revisions = self._load()["plans"].get(plan_date) or []
        if not revisions:
            raise StoreError(f"plan not found for date: {plan_date}")
        latest = revisions[-1]
        deleted_at = latest.get("deleted_at")
        if not deleted_at:
            raise StoreError(f"plan is not deleted for date: {plan_date}")

        latest["deleted_at"] = None
        for slot in latest["slots"]:
            if slot.get("deleted_at") == deleted_at:
                slot["deleted_at"] = None
        self._save()

    def record_slot_feedback(self, plan_date: str, revision: int, slot: Slot) -> None:
        """
        Write a slot's status and feedback into an existing revision.

        Accepted revisions allow this; the slot's times and task stay fixed.
        The slot is matched on start, end and task_id among live slots.
        """
        for raw in self._load()["plans"].get(plan_date) or []:
            if raw["revision"] != revision:
                continue
            if raw.get("deleted_at"):
                raise StoreError(f"cannot record feedback on a deleted plan: {plan_date}")
            for stored in raw["slots"]:
                if stored.get("deleted_at"):
                    continue
                if (stored["start"], stored["end"], stored["task_id"]) != (slot.start, slot.end, slot.task_id):
                    continue
                updated = slot.to_dict()
                stored["status"] = updated["status"]
                stored.pop("feedback", None)
                if "feedback" in updated:
                    stored["feedback"] = updated["feedback"]
                self._save()
                logger.debug(f"Recorded feedback for {plan_date} revision {revision} slot {slot.start}")
                return
            raise StoreError(f"slot {slot.start}-{slot.end} not found in {plan_date} revision {revision}")
        raise StoreError(f"revision {revision} not found for {plan_date}")
