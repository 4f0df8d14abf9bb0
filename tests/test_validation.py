"""Tests for conflict detection."""

import copy
from datetime import date

import pytest

from daylit.core.plans import DayPlan, Slot
from daylit.core.recurrence import EveryNDays, Weekly
from daylit.core.validation import ConflictType, format_report, validate_plan, validate_tasks

MON, TUE = 0, 1


def _types(conflicts) -> list[ConflictType]:
    return [c.type for c in conflicts]


class TestDuplicateNames:
    def test_reports_all_ids(self, make_task):
        tasks = [make_task("a", "Gym"), make_task("b", "Read"), make_task("c", "Gym")]
        conflicts = validate_tasks(tasks)

        assert _types(conflicts) == [ConflictType.DUPLICATE_TASK_NAME]
        assert conflicts[0].task_ids == ["a", "c"]
        assert conflicts[0].items == ["Gym"]
        assert '"Gym"' in conflicts[0].description

    def test_one_conflict_per_name(self, make_task):
        tasks = [make_task(str(i), "Gym") for i in range(3)] + [make_task("x", "Read"), make_task("y", "Read")]
        conflicts = validate_tasks(tasks)
        assert len(conflicts) == 2
        assert conflicts[0].task_ids == ["0", "1", "2"]

    def test_ignores_deleted_and_unnamed(self, make_task):
        tasks = [
            make_task("a", "Gym"),
            make_task("b", "Gym", deleted_at="2026-01-01T00:00:00Z"),
            make_task("c", ""),
            make_task("d", ""),
        ]
        assert validate_tasks(tasks) == []

    def test_names_compared_exactly(self, make_task):
        assert validate_tasks([make_task("a", "Gym"), make_task("b", "gym")]) == []


class TestTimeFields:
    def test_one_conflict_per_malformed_field(self, make_task):
        task = make_task("a", "Read", earliest_start="25:00", latest_end="late")
        conflicts = validate_tasks([task])
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME] * 2
        assert "earliest_start" in conflicts[0].description
        assert "latest_end" in conflicts[1].description

    def test_fixed_end_before_start(self, make_appointment):
        conflicts = validate_tasks([make_appointment("a", "11:00", "10:00", name="Standup")])
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME]
        assert "before start time" in conflicts[0].description

    def test_malformed_fixed_time(self, make_appointment):
        conflicts = validate_tasks([make_appointment("a", "10:00", "10:75")])
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME]
        assert "fixed_end" in conflicts[0].description

    def test_valid_task_is_clean(self, make_task):
        assert validate_tasks([make_task("a", earliest_start="08:00", latest_end="12:00")]) == []


class TestOverlappingAppointments:
    def test_overlap_detected(self, make_appointment):
        tasks = [make_appointment("a", "09:00", "10:00"), make_appointment("b", "09:30", "10:30")]
        conflicts = validate_tasks(tasks)
        assert _types(conflicts) == [ConflictType.OVERLAPPING_FIXED_TASKS]
        assert conflicts[0].task_ids == ["a", "b"]
        assert conflicts[0].time_range == "09:00-10:00"

    def test_sorted_by_start(self, make_appointment):
        tasks = [make_appointment("late", "09:30", "10:30"), make_appointment("early", "09:00", "10:00")]
        assert validate_tasks(tasks)[0].task_ids == ["early", "late"]

    def test_adjacent_not_flagged(self, make_appointment):
        tasks = [make_appointment("a", "09:00", "10:00"), make_appointment("b", "10:00", "11:00")]
        assert validate_tasks(tasks) == []

    def test_pairwise(self, make_appointment):
        tasks = [
            make_appointment("a", "09:00", "12:00"),
            make_appointment("b", "10:00", "10:30"),
            make_appointment("c", "11:00", "11:30"),
        ]
        pairs = [c.task_ids for c in validate_tasks(tasks)]
        assert pairs == [["a", "b"], ["a", "c"]]

    def test_disjoint_weekdays_never_overlap(self, make_appointment):
        tasks = [
            make_appointment("a", "09:00", "10:00", recurrence=Weekly(frozenset({MON}))),
            make_appointment("b", "09:00", "10:00", recurrence=Weekly(frozenset({TUE}))),
        ]
        assert validate_tasks(tasks) == []

    def test_empty_weekday_set_is_conservative(self, make_appointment):
        tasks = [
            make_appointment("a", "09:00", "10:00", recurrence=Weekly()),
            make_appointment("b", "09:00", "10:00", recurrence=Weekly(frozenset({TUE}))),
        ]
        assert _types(validate_tasks(tasks)) == [ConflictType.OVERLAPPING_FIXED_TASKS]

    def test_mixed_recurrence_is_conservative(self, make_appointment):
        tasks = [
            make_appointment("a", "09:00", "10:00", recurrence=EveryNDays(3)),
            make_appointment("b", "09:00", "10:00", recurrence=Weekly(frozenset({TUE}))),
        ]
        assert _types(validate_tasks(tasks)) == [ConflictType.OVERLAPPING_FIXED_TASKS]

    def test_inactive_ignored(self, make_appointment):
        tasks = [make_appointment("a", "09:00", "10:00"), make_appointment("b", "09:00", "10:00", active=False)]
        assert validate_tasks(tasks) == []

    def test_scoped_to_date(self, make_appointment):
        tasks = [
            make_appointment("a", "09:00", "10:00", recurrence=Weekly(frozenset({MON}))),
            make_appointment("b", "09:30", "10:30", recurrence=Weekly(frozenset({MON}))),
        ]
        assert validate_tasks(tasks, date(2026, 1, 6)) == []  # Tuesday
        conflicts = validate_tasks(tasks, date(2026, 1, 5))  # Monday
        assert _types(conflicts) == [ConflictType.OVERLAPPING_FIXED_TASKS]
        assert conflicts[0].date == "2026-01-05"

    def test_does_not_mutate(self, make_appointment):
        tasks = [make_appointment("b", "09:30", "10:30"), make_appointment("a", "09:00", "10:00")]
        before = copy.deepcopy(tasks)
        validate_tasks(tasks)
        assert tasks == before


@pytest.fixture
def catalog(make_task):
    return [make_task("a", "Write"), make_task("b", "Read"), make_task("c", "Walk")]


def _plan(*slots: tuple[str, str, str], plan_date: str = "2026-01-05") -> DayPlan:
    return DayPlan(date=plan_date, slots=[Slot(start=s, end=e, task_id=t) for s, e, t in slots])


class TestValidatePlan:
    def test_clean_plan(self, catalog):
        plan = _plan(("09:00", "10:00", "a"), ("10:00", "11:00", "b"))
        assert validate_plan(plan, catalog, "09:00", "17:00") == []

    def test_invalid_date_stops(self, catalog):
        plan = _plan(("10:00", "09:00", "zzz"), plan_date="2026-02-30")
        conflicts = validate_plan(plan, catalog, "bad", "17:00")
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME]
        assert "Invalid plan date" in conflicts[0].description

    def test_invalid_day_start_still_checks_slots(self, catalog):
        plan = _plan(("09:00", "10:00", "zzz"))
        conflicts = validate_plan(plan, catalog, "7am", "17:00")
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME, ConflictType.MISSING_TASK_ID]

    def test_non_positive_window_stops(self, catalog):
        plan = _plan(("09:00", "10:00", "zzz"))
        conflicts = validate_plan(plan, catalog, "17:00", "09:00")
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME]
        assert "waking window" in conflicts[0].description

    def test_both_boundaries_invalid(self, catalog):
        conflicts = validate_plan(_plan(), catalog, "x", "y")
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME] * 3

    def test_malformed_slot_times(self, catalog):
        conflicts = validate_plan(_plan(("9:00", "10:60", "a")), catalog, "09:00", "17:00")
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME] * 2

    def test_missing_task(self, catalog):
        conflicts = validate_plan(_plan(("09:00", "10:00", "gone")), catalog, "09:00", "17:00")
        assert _types(conflicts) == [ConflictType.MISSING_TASK_ID]
        assert "gone" in conflicts[0].description
        assert conflicts[0].description.startswith("Mon: ")

    def test_deleted_task_counts_as_missing(self, make_task):
        tasks = [make_task("a", deleted_at="2026-01-01T00:00:00Z")]
        conflicts = validate_plan(_plan(("09:00", "10:00", "a")), tasks, "09:00", "17:00")
        assert _types(conflicts) == [ConflictType.MISSING_TASK_ID]

    def test_end_before_start_excluded_from_total(self, catalog):
        plan = _plan(("17:00", "09:00", "a"), ("09:00", "10:00", "b"))
        conflicts = validate_plan(plan, catalog, "09:00", "17:00")
        assert _types(conflicts) == [ConflictType.INVALID_DATETIME]

    def test_deleted_slots_ignored(self, catalog):
        plan = _plan(("09:00", "10:00", "a"), ("09:00", "10:00", "gone"))
        plan.slots[1].deleted_at = "2026-01-01T00:00:00Z"
        assert validate_plan(plan, catalog, "09:00", "17:00") == []

    def test_overlapping_slots(self, catalog):
        plan = _plan(("10:00", "11:00", "b"), ("09:00", "10:30", "a"))
        conflicts = validate_plan(plan, catalog, "09:00", "17:00")
        assert _types(conflicts) == [ConflictType.OVERLAPPING_SLOTS]
        assert conflicts[0].items == ["Write", "Read"]
        assert conflicts[0].time_range == "09:00-10:30"

    def test_overlap_with_unknown_task(self, catalog):
        plan = _plan(("09:00", "10:00", "a"), ("09:30", "10:00", "gone"))
        conflicts = validate_plan(plan, catalog, "09:00", "17:00")
        assert ConflictType.OVERLAPPING_SLOTS in _types(conflicts)
        overlap = next(c for c in conflicts if c.type == ConflictType.OVERLAPPING_SLOTS)
        assert overlap.items == ["Write", "Unknown"]

    def test_does_not_mutate(self, catalog):
        plan = _plan(("10:00", "11:00", "b"), ("09:00", "10:30", "a"))
        before = copy.deepcopy(plan)
        validate_plan(plan, catalog, "09:00", "17:00")
        assert plan == before


class TestCapacity:
    """Window is 09:00-19:00, i.e. 600 minutes; 80% is 480."""

    def test_below_threshold(self, catalog):
        plan = _plan(("09:00", "16:59", "a"))
        assert validate_plan(plan, catalog, "09:00", "19:00") == []

    def test_exactly_eighty_percent_is_overcommitted(self, catalog):
        plan = _plan(("09:00", "13:00", "a"), ("13:00", "17:00", "b"))
        conflicts = validate_plan(plan, catalog, "09:00", "19:00")
        assert _types(conflicts) == [ConflictType.OVERCOMMITTED]
        assert "8.0h scheduled in 10.0h" in conflicts[0].description

    def test_full_window_is_overcommitted(self, catalog):
        plan = _plan(("09:00", "19:00", "a"))
        assert _types(validate_plan(plan, catalog, "09:00", "19:00")) == [ConflictType.OVERCOMMITTED]

    def test_over_window_exceeds_only(self, catalog):
        plan = _plan(("09:00", "19:00", "a"), ("09:00", "10:00", "b"))
        types = _types(validate_plan(plan, catalog, "09:00", "19:00"))
        assert ConflictType.EXCEEDS_WAKING_WINDOW in types
        assert ConflictType.OVERCOMMITTED not in types


class TestFormatReport:
    def test_empty(self):
        assert format_report([]) == "No conflicts detected."

    def test_lists_descriptions(self, make_task):
        report = format_report(validate_tasks([make_task("a", "Gym"), make_task("b", "Gym")]))
        assert report.startswith("Conflicts detected:\n- Duplicate task name")
