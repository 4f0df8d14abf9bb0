"""Shared fixtures."""

from datetime import date

import pytest

from daylit.core.recurrence import Daily
from daylit.core.tasks import Task, TaskKind


@pytest.fixture
def today():
    # A Monday
    return date(2026, 1, 5)


@pytest.fixture
def make_task():
    """Factory for creating flexible tasks."""

    def _make(task_id: str, name: str | None = None, **kwargs) -> Task:
        kwargs.setdefault("recurrence", Daily())
        return Task(id=task_id, name=name if name is not None else task_id, **kwargs)

    return _make


@pytest.fixture
def make_appointment():
    """Factory for creating fixed appointments."""

    def _make(task_id: str, start: str, end: str, name: str | None = None, **kwargs) -> Task:
        kwargs.setdefault("recurrence", Daily())
        return Task(
            id=task_id,
            name=name if name is not None else task_id,
            kind=TaskKind.APPOINTMENT,
            fixed_start=start,
            fixed_end=end,
            **kwargs,
        )

    return _make
