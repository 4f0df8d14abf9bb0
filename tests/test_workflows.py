"""Tests for the shared workflow layer."""

from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from daylit.adapters.json_store import JsonFileStore
from daylit.config import Config
from daylit.core.feedback import FeedbackError
from daylit.core.plans import DayPlan, FeedbackRating, Slot, SlotStatus
from daylit.core.recurrence import Weekly
from daylit.core.scheduler import PlanningError
from daylit.core.validation import ConflictType, validate_tasks
from daylit.ports.plan_store import Settings
from daylit.workflows import (
    accept_plan,
    current_activity,
    fix_duplicates,
    get_store,
    propose_plan,
    record_feedback,
    validate_all,
)

DAY = "2026-01-05"


@pytest.fixture
def store(tmp_path):
    store = JsonFileStore(tmp_path / "daylit.json")
    store.init(Settings(day_start="09:00", day_end="17:00"))
    return store


class TestGetStore:
    def test_uses_configured_path(self, tmp_path):
        store = get_store(Config(store_path=str(tmp_path / "x.json")))
        assert store.path == tmp_path / "x.json"

    def test_expands_user_path(self):
        store = get_store(Config(store_path="~/plans/daylit.json"))
        assert store.path == Path.home() / "plans" / "daylit.json"


class TestProposePlan:
    def test_uses_store_settings(self, store, make_task):
        store.add_task(make_task("a", duration_min=60))
        proposal = propose_plan(store, DAY)

        assert [(s.start, s.end) for s in proposal.plan.slots] == [("09:00", "10:00")]
        assert proposal.existing is None
        assert proposal.conflicts == []

    def test_does_not_save(self, store, make_task):
        store.add_task(make_task("a"))
        propose_plan(store, DAY)
        assert store.get_plan(DAY) is None

    def test_includes_existing_plan(self, store, make_task):
        store.add_task(make_task("a"))
        store.save_plan(DayPlan(date=DAY, slots=[Slot("09:00", "09:30", "a")]))
        assert propose_plan(store, DAY).existing.revision == 1

    def test_collects_catalog_and_plan_conflicts(self, store, make_task):
        store.add_task(make_task("a", "Gym", duration_min=240))
        store.add_task(make_task("b", "Gym", duration_min=240))

        types = [c.type for c in propose_plan(store, DAY).conflicts]
        assert types == [ConflictType.DUPLICATE_TASK_NAME, ConflictType.OVERCOMMITTED]

    def test_bad_settings_raise(self, tmp_path, make_task):
        store = JsonFileStore(tmp_path / "daylit.json")
        store.init(Settings(day_start="late"))
        with pytest.raises(PlanningError, match="invalid day start time"):
            propose_plan(store, DAY)


class TestAcceptPlan:
    def test_saves_accepted_revision(self, store, make_task):
        store.add_task(make_task("a"))
        saved = accept_plan(store, propose_plan(store, DAY).plan)

        assert saved.revision == 1
        assert saved.is_accepted
        assert store.get_plan(DAY).is_accepted

    def test_second_accept_is_new_revision(self, store, make_task):
        store.add_task(make_task("a"))
        accept_plan(store, propose_plan(store, DAY).plan)
        assert accept_plan(store, propose_plan(store, DAY).plan).revision == 2


class TestValidateAll:
    def test_scoped_to_date(self, store, make_appointment):
        tuesdays = Weekly(frozenset({1}))
        store.add_task(make_appointment("a", "10:00", "11:00", recurrence=tuesdays))
        store.add_task(make_appointment("b", "10:30", "11:30", recurrence=tuesdays))

        assert validate_all(store, DAY) == []
        assert [c.type for c in validate_all(store, "2026-01-06")] == [ConflictType.OVERLAPPING_FIXED_TASKS]

    def test_checks_saved_plan(self, store, make_task):
        store.add_task(make_task("a"))
        store.save_plan(DayPlan(date=DAY, slots=[Slot("09:00", "09:30", "gone")]))
        assert [c.type for c in validate_all(store, DAY)] == [ConflictType.MISSING_TASK_ID]


class TestFixDuplicates:
    def test_deletes_through_store(self, store, make_task):
        store.add_task(make_task("1", "Gym"))
        store.add_task(make_task("2", "Gym"))

        actions = fix_duplicates(store, validate_all(store, DAY))

        assert actions[0].deleted_ids == ["2"]
        assert [t.id for t in store.get_all_tasks()] == ["1"]
        assert validate_all(store, DAY) == []

    def test_store_failures_are_reported(self, make_task):
        store = MagicMock()
        store.get_all_tasks.return_value = [make_task("1", "Gym"), make_task("2", "Gym")]
        store.delete_task.side_effect = OSError("read-only")

        actions = fix_duplicates(store, validate_tasks(store.get_all_tasks()))
        assert actions[0].failed_ids == ["2"]


class TestRecordFeedback:
    NOW = datetime(2026, 1, 5, 10, 15)

    @pytest.fixture
    def accepted(self, store, make_task):
        store.add_task(make_task("a", "Gym", duration_min=60, last_done="2026-01-01"))
        store.add_task(make_task("b", "Read", duration_min=60, last_done="2026-01-01"))
        plan = DayPlan(date=DAY, slots=[Slot("09:00", "10:00", "a"), Slot("10:00", "11:00", "b")])
        return store.save_plan(plan.accept())

    def test_rates_slot_and_adjusts_task(self, store, accepted):
        result = record_feedback(store, FeedbackRating.ON_TRACK, "good", now=self.NOW)

        assert result.slot.task_id == "a"
        assert result.task.last_done == DAY
        assert store.get_task("a").avg_actual_duration_min == 60.0

        plan = store.get_plan(DAY)
        assert plan.revision == accepted.revision
        assert plan.slots[0].status == SlotStatus.DONE
        assert plan.slots[1].status == SlotStatus.ACCEPTED

    def test_last_done_feeds_next_plan(self, store, accepted):
        record_feedback(store, FeedbackRating.ON_TRACK, now=self.NOW)
        # Gym is now fresher than Read, so Read goes first on the next day
        proposal = propose_plan(store, "2026-01-06")
        assert [s.task_id for s in proposal.plan.slots] == ["b", "a"]

    def test_no_plan(self, store):
        with pytest.raises(FeedbackError, match="no plan found"):
            record_feedback(store, FeedbackRating.ON_TRACK, now=self.NOW)

    def test_nothing_finished(self, store, accepted):
        with pytest.raises(FeedbackError, match="no past slot"):
            record_feedback(store, FeedbackRating.ON_TRACK, now=datetime(2026, 1, 5, 9, 59))

    def test_missing_task_still_records(self, store, accepted):
        store.delete_task("a")
        result = record_feedback(store, FeedbackRating.TOO_MUCH, now=self.NOW)

        assert result.task is None
        assert store.get_plan(DAY).slots[0].feedback.rating == FeedbackRating.TOO_MUCH


class TestCurrentActivity:
    def test_slot_in_progress(self, store, make_task):
        store.add_task(make_task("a"))
        store.save_plan(DayPlan(date=DAY, slots=[Slot("09:00", "10:00", "a")]).accept())

        plan, slot = current_activity(store, datetime(2026, 1, 5, 9, 45))
        assert plan.date == DAY
        assert slot.task_id == "a"

    def test_no_plan(self, store):
        assert current_activity(store, datetime(2026, 1, 5, 9, 45)) == (None, None)
