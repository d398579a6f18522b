"""
Tests for the state reducer and the AppStore signals.
"""

import datetime

from habitflow.domain.models import Habit, HabitEntry, Task
from habitflow.services.state import (COLLECTIONS, AppState, AppStore, LoadStatus, ReplaceAll,
                                      SetError, SetHabits, SetStatus, reduce)


def make_habit(habit_id: str, name: str = "Run") -> Habit:
    return Habit(id=habit_id, name=name, category="Fitness")


def test_initial_state():
    state = AppState()
    assert state.habits == {} and state.tasks == {} and state.habit_entries == {}
    assert all(state.status[name] == LoadStatus.UNINITIALIZED for name in COLLECTIONS)
    assert state.error is None


def test_set_habits_replaces_wholesale():
    state = reduce(AppState(), SetHabits(habits=[make_habit("a"), make_habit("b")]))
    state = reduce(state, SetHabits(habits=[make_habit("c")]))
    assert list(state.habits) == ["c"]


def test_collection_order_is_kept():
    state = reduce(AppState(), SetHabits(habits=[make_habit("new"), make_habit("old")]))
    assert [h.id for h in state.habit_list()] == ["new", "old"]


def test_reduce_does_not_mutate():
    before = AppState()
    after = reduce(before, SetHabits(habits=[make_habit("a")]))
    assert before.habits == {}
    assert after is not before


def test_set_status_only_touches_named_collections():
    state = reduce(AppState(), SetStatus(collections=["tasks"], status=LoadStatus.LOADING))
    assert state.status["tasks"] == LoadStatus.LOADING
    assert state.status["habits"] == LoadStatus.UNINITIALIZED


def test_replace_all():
    entry = HabitEntry(id="e1", habit_id="a", date=datetime.date(2026, 10, 19))
    task = Task(id="t1", title="Pay rent", category="Finance")
    state = reduce(AppState(), ReplaceAll(habits=[make_habit("a")], tasks=[task], habit_entries=[entry]))
    assert list(state.habits) == ["a"]
    assert list(state.tasks) == ["t1"]
    assert list(state.habit_entries) == ["e1"]

    cleared = reduce(state, ReplaceAll())
    assert cleared.habits == {} and cleared.tasks == {} and cleared.habit_entries == {}


def test_entries_for_habit():
    entries = [
        HabitEntry(id="e1", habit_id="a", date=datetime.date(2026, 10, 19)),
        HabitEntry(id="e2", habit_id="b", date=datetime.date(2026, 10, 19)),
    ]
    state = reduce(AppState(), ReplaceAll(habit_entries=entries))
    assert [e.id for e in state.entries_for("a")] == ["e1"]


class TestAppStore:

    def test_dispatch_emits_only_changed_parts(self):
        store = AppStore()
        habits_seen, tasks_seen = [], []
        store.habits_changed.connect(habits_seen.append)
        store.tasks_changed.connect(tasks_seen.append)

        store.dispatch(SetHabits(habits=[make_habit("a")]))

        assert len(habits_seen) == 1
        assert habits_seen[0][0].id == "a"
        assert tasks_seen == []

    def test_status_and_error_signals(self):
        store = AppStore()
        statuses, errors = [], []
        store.status_changed.connect(statuses.append)
        store.error_changed.connect(errors.append)

        store.dispatch(SetStatus(collections=list(COLLECTIONS), status=LoadStatus.READY))
        store.dispatch(SetError(error="boom"))
        store.dispatch(SetError(error="boom"))

        assert statuses[-1]["habits"] == LoadStatus.READY
        assert errors == ["boom"]

    def test_reset(self):
        store = AppStore()
        store.dispatch(SetHabits(habits=[make_habit("a")]))
        store.reset()
        assert store.state == AppState()
