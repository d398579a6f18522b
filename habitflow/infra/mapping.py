"""
Boundary mapping between backend rows and domain models.

Rows arrive as loosely typed dictionaries. Each one is validated into its
domain model here; bad rows are rejected with ValidationError, and
`map_rows` skips them so one broken record does not hide the rest.
"""

import logging
from typing import Any, Callable, Dict, List, TypeVar

from pydantic import ValidationError

from habitflow.domain.models import Habit, HabitEntry, Task

logger = logging.getLogger(__name__)

T = TypeVar("T")
Row = Dict[str, Any]


def habit_from_row(row: Row) -> Habit:
    return Habit.model_validate(row)


def task_from_row(row: Row) -> Task:
    # Subtask rows carry task_id/position, which the model ignores
    return Task.model_validate({**row, "subtasks": row.get("subtasks") or []})


def habit_entry_from_row(row: Row) -> HabitEntry:
    return HabitEntry.model_validate(row)


def map_rows(rows: List[Row], mapper: Callable[[Row], T], collection: str) -> List[T]:
    """Map every row, dropping (and logging) the ones that do not validate"""
    records = []
    for row in rows:
        try:
            records.append(mapper(row))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed {collection} row {row.get('id')!r}: {e}")
    return records


def habit_to_row(habit: Habit) -> Row:
    return habit.model_dump(exclude={"id", "created_at"})


def task_to_row(task: Task) -> Row:
    row = task.model_dump(exclude={"id", "created_at"})
    row["subtasks"] = [s.model_dump(exclude={"id"}) for s in task.subtasks]
    return row


def habit_entry_to_row(entry: HabitEntry) -> Row:
    return entry.model_dump(exclude={"id"})

