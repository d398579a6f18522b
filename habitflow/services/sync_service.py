"""
Sync Service - mirrors the persistence backend into the AppStore.

Architecture Decision: Single write boundary
All reads and writes of the three collections go through this service:
- session changes trigger a full refetch (stale results are discarded)
- successful writes patch exactly one record in local state
- failed writes leave local state untouched and raise a classified error

A write that lands while a refresh is in flight is replayed on top of the
fetched snapshot, so the refresh cannot undo it whatever order they finish in.
"""

import asyncio
import datetime
import logging
from contextlib import asynccontextmanager
from typing import Callable, List, Optional, Tuple, TypeVar

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from habitflow.domain.errors import (ConfigurationError, DuplicateEntryError, NotAuthenticatedError,
                                     RecordNotFoundError, RemoteError, ValidationFailedError)
from habitflow.domain.metrics import is_habit_completed_today
from habitflow.domain.models import Habit, HabitEntry, HabitUpdate, Task, TaskUpdate
from habitflow.infra.backend import Backend, ConfiguredBackend, UnconfiguredBackend
from habitflow.infra.db import is_unique_violation
from habitflow.infra.identity import Identity, IdentityProvider, SessionEvent
from habitflow.infra.mapping import (habit_entry_from_row, habit_entry_to_row, habit_from_row,
                                     habit_to_row, map_rows, task_from_row, task_to_row)
from habitflow.services.state import (COLLECTIONS, HABIT_ENTRIES, HABITS, TASKS, AppStore, LoadStatus,
                                      ReplaceAll, SetError, SetStatus, set_collection)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A local change to one collection: current records in, patched records out
Patch = Callable[[list], list]

# Columns that may never be cleared by a partial update
HABIT_REQUIRED = ("name", "category", "frequency", "target_count", "color", "is_active")
TASK_REQUIRED = ("title", "category", "priority", "completed")


def _check_required(values: dict, fields) -> None:
    for name in fields:
        if name not in values:
            continue
        value = values[name]
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationFailedError(f"{name} is required", "validate")


# Patches are idempotent so they can be applied again to a fresh snapshot

def _prepend(record) -> Patch:
    return lambda records: [record, *(r for r in records if r.id != record.id)]


def _replace(record) -> Patch:
    return lambda records: [record if r.id == record.id else r for r in records]


def _without(predicate: Callable[[object], bool]) -> Patch:
    return lambda records: [r for r in records if not predicate(r)]


class SyncService:
    """
    The data synchronization layer. Knows nothing about the UI.

    One instance per application session, bound to one AppStore, one
    identity provider and one backend variant.
    """

    def __init__(self, store: AppStore, identity: IdentityProvider, backend: Backend):
        self.store = store
        self.identity = identity
        self.backend = backend

        self.current_identity: Optional[Identity] = None

        # Bumped on every identity change; refresh results from an older
        # generation are discarded
        self._generation = 0
        self._refresh_task: Optional[asyncio.Task] = None

        # Local patches made while at least one refresh is fetching
        self._active_refreshes = 0
        self._pending_patches: List[Tuple[str, Patch]] = []

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self):
        """Subscribe to session changes and load the current session's data"""
        self.identity.session_changed.connect(self._on_session_changed)
        session = await self.identity.get_session()
        self._apply_session(SessionEvent.INITIAL_SESSION, session)
        await self.wait_for_refresh()

    async def close(self):
        """Unsubscribe and let any in-flight refresh finish (its result is dropped)"""
        try:
            self.identity.session_changed.disconnect(self._on_session_changed)
        except (RuntimeError, TypeError):
            # Never connected
            pass
        self._generation += 1
        await self.wait_for_refresh()

    async def wait_for_refresh(self):
        """Wait until the most recently scheduled refresh has finished"""
        task = self._refresh_task
        while task is not None:
            await task
            if task is self._refresh_task:
                break
            task = self._refresh_task

    async def sign_out(self):
        """Clear local data immediately, then end the session"""
        self._apply_session(SessionEvent.SIGNED_OUT, None)
        await self.identity.sign_out()

    def _on_session_changed(self, event, identity):
        self._apply_session(SessionEvent(event), identity)

    def _apply_session(self, event: SessionEvent, identity: Optional[Identity]):
        if event == SessionEvent.SIGNED_OUT or identity is None:
            self._generation += 1
            self.current_identity = None
            self.store.dispatch(ReplaceAll())
            self.store.dispatch(SetStatus(collections=list(COLLECTIONS), status=LoadStatus.EMPTY))
            self.store.dispatch(SetError(error=None))
            return

        previous = self.current_identity
        self.current_identity = identity
        if previous is not None and previous.user_id == identity.user_id:
            # Token refresh or profile update for the same user
            logger.debug(f"Session {event.value} for current user, no refetch")
            return

        self._generation += 1
        if previous is not None:
            # Never show the previous user's data while the new one loads
            self.store.dispatch(ReplaceAll())
        self._refresh_task = asyncio.get_running_loop().create_task(self.refresh())

    # ── Guards ────────────────────────────────────────────────

    def _require_session(self) -> Tuple[ConfiguredBackend, Identity]:
        match self.backend:
            case UnconfiguredBackend(missing=missing):
                raise ConfigurationError(missing)
            case ConfiguredBackend() as backend:
                if self.current_identity is None:
                    raise NotAuthenticatedError()
                return backend, self.current_identity
        raise ConfigurationError()

    @asynccontextmanager
    async def _remote(self, operation: str):
        """Convert backend exceptions into classified errors"""
        try:
            yield
        except LookupError as e:
            logger.error(f"Error {operation}: {e}")
            raise RecordNotFoundError(str(e), operation) from e
        except IntegrityError as e:
            logger.error(f"Error {operation}: {e}")
            raise ValidationFailedError(f"Failed to {operation}: rejected by backend", operation) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error {operation}: {e}")
            raise RemoteError(f"Failed to {operation}: {e}", operation) from e

    @staticmethod
    def _canonical(mapper: Callable[[dict], T], row: dict, operation: str) -> T:
        try:
            return mapper(row)
        except ValidationError as e:
            logger.error(f"Malformed record returned by {operation}: {e}")
            raise RemoteError(f"Failed to {operation}: malformed response", operation) from e

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.warning("Identity changed during a write, local state not patched")
            return False
        return True

    def _patch(self, generation: int, *changes: Tuple[str, Patch]):
        """Apply local patches for a confirmed write; remember them for refreshes in flight"""
        if not self._is_current(generation):
            return
        for collection, patch in changes:
            if self._active_refreshes:
                self._pending_patches.append((collection, patch))
            self.store.dispatch(set_collection(collection, patch(self.store.state.records(collection))))

    # ── Refresh ───────────────────────────────────────────────

    async def refresh(self) -> bool:
        """
        Refetch all three collections for the current identity.

        Errors are recorded in the store (status ERROR, last data kept)
        rather than raised. Returns True when fresh data was applied.
        """
        identity = self.current_identity
        generation = self._generation
        if identity is None:
            return False

        if isinstance(self.backend, UnconfiguredBackend):
            error = ConfigurationError(self.backend.missing)
            self.store.dispatch(SetStatus(collections=list(COLLECTIONS), status=LoadStatus.ERROR))
            self.store.dispatch(SetError(error=str(error)))
            return False

        self.store.dispatch(SetStatus(collections=list(COLLECTIONS), status=LoadStatus.LOADING))
        self.store.dispatch(SetError(error=None))

        first_patch = len(self._pending_patches)
        self._active_refreshes += 1
        try:
            return await self._fetch_snapshot(self.backend, identity, generation, first_patch)
        finally:
            self._active_refreshes -= 1
            if not self._active_refreshes:
                self._pending_patches.clear()

    async def _fetch_snapshot(self, backend: ConfiguredBackend, identity: Identity,
                              generation: int, first_patch: int) -> bool:
        try:
            habit_rows = await backend.habits.select_for_user(identity.user_id)
            task_rows = await backend.tasks.select_for_user(identity.user_id)
            entry_rows = await backend.habit_entries.select_for_user(identity.user_id)
        except (SQLAlchemyError, OSError) as e:
            if generation != self._generation:
                logger.warning(f"Ignoring failed stale refresh for user {identity.user_id}: {e}")
                return False
            logger.error(f"Error fetching data: {e}")
            self.store.dispatch(SetStatus(collections=list(COLLECTIONS), status=LoadStatus.ERROR))
            self.store.dispatch(SetError(error=f"Failed to load data: {e}"))
            return False

        if generation != self._generation:
            logger.warning(f"Discarding stale refresh for user {identity.user_id}")
            return False

        snapshot = {
            HABITS: map_rows(habit_rows, habit_from_row, "habit"),
            TASKS: map_rows(task_rows, task_from_row, "task"),
            HABIT_ENTRIES: map_rows(entry_rows, habit_entry_from_row, "habit entry"),
        }
        replayed = self._pending_patches[first_patch:]
        if replayed:
            logger.debug(f"Replaying {len(replayed)} local changes made during the refresh")
        for collection, patch in replayed:
            snapshot[collection] = patch(snapshot[collection])

        for collection in COLLECTIONS:
            self.store.dispatch(set_collection(collection, snapshot[collection]))
        self.store.dispatch(SetStatus(collections=list(COLLECTIONS), status=LoadStatus.READY))

        state = self.store.state
        logger.info(
            f"Loaded {len(state.habits)} habits, {len(state.tasks)} tasks, "
            f"{len(state.habit_entries)} entries for user {identity.user_id}"
        )
        return True

    # ── Habits ────────────────────────────────────────────────

    async def add_habit(self, habit: Habit) -> Habit:
        """Create a habit and prepend the stored record to local state"""
        _check_required(habit.model_dump(), ("name", "category"))
        backend, identity = self._require_session()
        generation = self._generation

        async with self._remote("add habit"):
            row = await backend.habits.insert(identity.user_id, habit_to_row(habit))
        created = self._canonical(habit_from_row, row, "add habit")

        self._patch(generation, (HABITS, _prepend(created)))
        return created

    async def update_habit(self, habit_id: str, update: HabitUpdate) -> Habit:
        """Send only the changed fields; replace the local record with the result"""
        changes = update.changes()
        _check_required(changes, HABIT_REQUIRED)
        backend, identity = self._require_session()
        generation = self._generation

        async with self._remote("update habit"):
            row = await backend.habits.update(identity.user_id, habit_id, changes)
        if row is None:
            raise RecordNotFoundError(f"Habit {habit_id} not found", "update habit")
        updated = self._canonical(habit_from_row, row, "update habit")

        self._patch(generation, (HABITS, _replace(updated)))
        return updated

    async def delete_habit(self, habit_id: str):
        """Delete a habit; the backend cascades, and local entries are pruned too"""
        backend, identity = self._require_session()
        generation = self._generation

        async with self._remote("delete habit"):
            deleted = await backend.habits.delete(identity.user_id, habit_id)
        if not deleted:
            raise RecordNotFoundError(f"Habit {habit_id} not found", "delete habit")

        self._patch(
            generation,
            (HABITS, _without(lambda h: h.id == habit_id)),
            (HABIT_ENTRIES, _without(lambda e: e.habit_id == habit_id)),
        )

    # ── Tasks ─────────────────────────────────────────────────

    async def add_task(self, task: Task) -> Task:
        _check_required(task.model_dump(), ("title", "category"))
        backend, identity = self._require_session()
        generation = self._generation

        async with self._remote("add task"):
            row = await backend.tasks.insert(identity.user_id, task_to_row(task))
        created = self._canonical(task_from_row, row, "add task")

        self._patch(generation, (TASKS, _prepend(created)))
        return created

    async def update_task(self, task_id: str, update: TaskUpdate) -> Task:
        """
        Partial update of a task in one backend call.

        Changing `completed` sets or clears `completed_at` in the same write;
        `completed_at` alone cannot be changed. Completing a task that is
        already completed keeps its original `completed_at`.
        """
        changes = update.changes()
        _check_required(changes, TASK_REQUIRED)
        if "completed" in changes:
            if not changes["completed"]:
                changes["completed_at"] = None
            elif not changes.get("completed_at"):
                current = self.store.state.tasks.get(task_id)
                if current is not None and current.completed:
                    changes["completed_at"] = current.completed_at
                else:
                    changes["completed_at"] = datetime.datetime.now()
        elif "completed_at" in changes:
            raise ValidationFailedError("completed_at can only change together with completed", "update task")

        backend, identity = self._require_session()
        generation = self._generation

        async with self._remote("update task"):
            row = await backend.tasks.update(identity.user_id, task_id, changes)
        if row is None:
            raise RecordNotFoundError(f"Task {task_id} not found", "update task")
        updated = self._canonical(task_from_row, row, "update task")

        self._patch(generation, (TASKS, _replace(updated)))
        return updated

    async def toggle_task(self, task_id: str) -> Optional[Task]:
        """Flip `completed` (and `completed_at`) as a single update"""
        task = self.store.state.tasks.get(task_id)
        if task is None:
            logger.warning(f"Cannot toggle task {task_id}: not in local state")
            return None

        completed = not task.completed
        return await self.update_task(task_id, TaskUpdate(
            completed=completed,
            completed_at=datetime.datetime.now() if completed else None,
        ))

    async def delete_task(self, task_id: str):
        backend, identity = self._require_session()
        generation = self._generation

        async with self._remote("delete task"):
            deleted = await backend.tasks.delete(identity.user_id, task_id)
        if not deleted:
            raise RecordNotFoundError(f"Task {task_id} not found", "delete task")

        self._patch(generation, (TASKS, _without(lambda t: t.id == task_id)))

    # ── Habit entries ─────────────────────────────────────────

    async def add_habit_entry(self, entry: HabitEntry) -> HabitEntry:
        """
        Log a habit for a day.

        Raises:
            DuplicateEntryError: the habit already has an entry on that day
        """
        backend, identity = self._require_session()
        generation = self._generation

        async with self._remote("add habit entry"):
            try:
                row = await backend.habit_entries.insert(identity.user_id, habit_entry_to_row(entry))
            except IntegrityError as e:
                if is_unique_violation(e):
                    logger.info(f"Habit {entry.habit_id} already has an entry for {entry.date}")
                    raise DuplicateEntryError(entry.habit_id, entry.date) from e
                raise
        created = self._canonical(habit_entry_from_row, row, "add habit entry")

        self._patch(generation, (HABIT_ENTRIES, _prepend(created)))
        return created

    async def mark_habit_complete(self, habit_id: str, count: int = 1, notes: Optional[str] = None,
                                  day: Optional[datetime.date] = None) -> HabitEntry:
        """
        Log today's completion of a habit.

        Checks local entries first so a known duplicate needs no round trip;
        the backend constraint still catches anything local state missed.
        """
        self._require_session()
        day = day or datetime.date.today()
        if is_habit_completed_today(self.store.state.entry_list(), habit_id, today=day):
            raise DuplicateEntryError(habit_id, day)

        return await self.add_habit_entry(HabitEntry(habit_id=habit_id, date=day, count=count, notes=notes))
