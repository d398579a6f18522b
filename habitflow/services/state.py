"""
Application state container.

Architecture Decision: Reducer + Observer (Qt Signals)
AppState is an immutable snapshot. Every change goes through a pure
`reduce(state, action)`; actions replace a collection wholesale, they never
merge. AppStore holds the current snapshot and emits one signal per changed
part so views can re-render.

Collections are dicts keyed by id, newest first.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from PySide6.QtCore import QObject, Signal

from habitflow.domain.models import Habit, HabitEntry, Task

HABITS = "habits"
TASKS = "tasks"
HABIT_ENTRIES = "habit_entries"
COLLECTIONS = (HABITS, TASKS, HABIT_ENTRIES)


class LoadStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


def _initial_status() -> Dict[str, LoadStatus]:
    return {name: LoadStatus.UNINITIALIZED for name in COLLECTIONS}


class AppState(BaseModel):
    model_config = ConfigDict(frozen=True)

    habits: Dict[str, Habit] = Field(default_factory=dict)
    tasks: Dict[str, Task] = Field(default_factory=dict)
    habit_entries: Dict[str, HabitEntry] = Field(default_factory=dict)
    status: Dict[str, LoadStatus] = Field(default_factory=_initial_status)
    error: Optional[str] = None

    def habit_list(self) -> List[Habit]:
        return list(self.habits.values())

    def task_list(self) -> List[Task]:
        return list(self.tasks.values())

    def entry_list(self) -> List[HabitEntry]:
        return list(self.habit_entries.values())

    def entries_for(self, habit_id: str) -> List[HabitEntry]:
        return [e for e in self.habit_entries.values() if e.habit_id == habit_id]

    def records(self, collection: str) -> list:
        """Records of one collection by name (HABITS, TASKS or HABIT_ENTRIES)"""
        return list(getattr(self, collection).values())


def keyed(records: Iterable) -> Dict[str, object]:
    """Collection dict from records already in display order"""
    return {record.id: record for record in records}


# ── Actions ───────────────────────────────────────────────────


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetHabits(_Action):
    habits: List[Habit]


class SetTasks(_Action):
    tasks: List[Task]


class SetHabitEntries(_Action):
    habit_entries: List[HabitEntry]


class SetStatus(_Action):
    collections: List[str]
    status: LoadStatus


class SetError(_Action):
    error: Optional[str]


class ReplaceAll(_Action):
    """Replace all three collections at once (import, sign-out)"""
    habits: List[Habit] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)
    habit_entries: List[HabitEntry] = Field(default_factory=list)


Action = Union[SetHabits, SetTasks, SetHabitEntries, SetStatus, SetError, ReplaceAll]


def set_collection(collection: str, records: List) -> Action:
    """The Set* action replacing one collection by name"""
    if collection == HABITS:
        return SetHabits(habits=records)
    if collection == TASKS:
        return SetTasks(tasks=records)
    if collection == HABIT_ENTRIES:
        return SetHabitEntries(habit_entries=records)
    raise ValueError(f"Unknown collection: {collection}")


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state after applying `action`. Never mutates `state`."""
    if isinstance(action, SetHabits):
        return state.model_copy(update={"habits": keyed(action.habits)})
    if isinstance(action, SetTasks):
        return state.model_copy(update={"tasks": keyed(action.tasks)})
    if isinstance(action, SetHabitEntries):
        return state.model_copy(update={"habit_entries": keyed(action.habit_entries)})
    if isinstance(action, SetStatus):
        status = dict(state.status)
        for name in action.collections:
            status[name] = action.status
        return state.model_copy(update={"status": status})
    if isinstance(action, SetError):
        return state.model_copy(update={"error": action.error})
    if isinstance(action, ReplaceAll):
        return state.model_copy(update={
            "habits": keyed(action.habits),
            "tasks": keyed(action.tasks),
            "habit_entries": keyed(action.habit_entries),
        })
    return state


class AppStore(QObject):
    """
    Holds the current AppState for one application session.

    Only the sync layer and the import path dispatch to it.
    """

    habits_changed = Signal(object)  # List[Habit]
    tasks_changed = Signal(object)  # List[Task]
    habit_entries_changed = Signal(object)  # List[HabitEntry]
    status_changed = Signal(object)  # Dict[str, LoadStatus]
    error_changed = Signal(object)  # str or None

    def __init__(self, state: Optional[AppState] = None):
        super().__init__()
        self._state = state or AppState()

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        previous = self._state
        self._state = reduce(previous, action)
        self._emit_changes(previous, self._state)
        return self._state

    def reset(self):
        """Back to the initial, uninitialized state (application teardown)"""
        previous = self._state
        self._state = AppState()
        self._emit_changes(previous, self._state)

    def _emit_changes(self, old: AppState, new: AppState):
        if old.habits is not new.habits:
            self.habits_changed.emit(new.habit_list())
        if old.tasks is not new.tasks:
            self.tasks_changed.emit(new.task_list())
        if old.habit_entries is not new.habit_entries:
            self.habit_entries_changed.emit(new.entry_list())
        if old.status != new.status:
            self.status_changed.emit(dict(new.status))
        if old.error != new.error:
            self.error_changed.emit(new.error)
