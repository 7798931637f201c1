from typing import Callable, List, Tuple

import pytest

from mrmaster.core.coordinator import create_coordinator


class ManualScheduler:
    """Stands in for the timer scheduler: watchdogs fire only when a test says so."""

    def __init__(self):
        self.calls: List[Tuple[float, Callable]] = []

    def call_later(self, delay, callback):
        self.calls.append((delay, callback))

    def pending(self) -> int:
        return len(self.calls)

    def fire_all(self) -> list:
        calls, self.calls = self.calls, []
        return [callback() for _, callback in calls]

    def cancel_all(self):
        self.calls = []


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_coordinator(scheduler):
    created = []

    def factory(splits, n_reduce, **kwargs):
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("task_timeout", 5.0)
        coordinator = create_coordinator(splits, n_reduce, **kwargs)
        created.append(coordinator)
        return coordinator

    yield factory
    for coordinator in created:
        coordinator.close()
