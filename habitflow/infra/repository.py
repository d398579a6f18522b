"""
Repository Pattern Implementation.

Architecture Decision: Why Repository Pattern?
Each repository is one collection of the persistence backend: filtered select,
insert, update-by-id and delete-by-id, always scoped to the owning user.
Repositories hand back plain row dictionaries (snake_case, like a REST
backend would); converting them into domain models is the mapping layer's job.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from habitflow.infra.db import (Base, DatabaseEngine, HabitEntryModel, HabitModel,
                                SubtaskModel, TaskModel)

Row = Dict[str, Any]

# Never taken from callers: assigned by the backend or by the owning identity
PROTECTED_COLUMNS = {"id", "user_id", "created_at", "updated_at"}


def _row(model: Base) -> Row:
    return {column.key: getattr(model, column.key) for column in model.__table__.columns}


def _writable(model_cls, values: Row) -> Row:
    """Keep only real, caller-writable columns"""
    columns = set(model_cls.__table__.columns.keys())
    return {k: v for k, v in values.items() if k in columns and k not in PROTECTED_COLUMNS}


class _Repository:

    def __init__(self, engine: DatabaseEngine):
        self.engine = engine

    def _get_session(self):
        return self.engine.get_session()


class HabitRepository(_Repository):
    """
    Handles the habits collection.
    """

    async def select_for_user(self, user_id: str) -> List[Row]:
        """All habits of a user, newest first"""
        session = self._get_session()
        async with session:
            result = await session.execute(
                select(HabitModel)
                .where(HabitModel.user_id == user_id)
                .order_by(HabitModel.created_at.desc())
            )
            return [_row(m) for m in result.scalars().all()]

    async def insert(self, user_id: str, values: Row) -> Row:
        session = self._get_session()
        async with session:
            model = HabitModel(**_writable(HabitModel, values), user_id=user_id)
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _row(model)

    async def update(self, user_id: str, habit_id: str, values: Row) -> Optional[Row]:
        """Apply a partial update. Returns None when no such habit is owned by the user."""
        session = self._get_session()
        async with session:
            result = await session.execute(
                select(HabitModel).where(HabitModel.id == habit_id, HabitModel.user_id == user_id)
            )
            model = result.scalar_one_or_none()
            if model is None:
                return None

            for key, value in _writable(HabitModel, values).items():
                setattr(model, key, value)

            await session.commit()
            await session.refresh(model)
            return _row(model)

    async def delete(self, user_id: str, habit_id: str) -> int:
        """Delete a habit; its entries go with it (ON DELETE CASCADE)"""
        session = self._get_session()
        async with session:
            result = await session.execute(
                delete(HabitModel).where(HabitModel.id == habit_id, HabitModel.user_id == user_id)
            )
            await session.commit()
            return result.rowcount


class TaskRepository(_Repository):
    """
    Handles the tasks collection together with the subtasks each task owns.
    """

    @staticmethod
    def _task_row(model: TaskModel) -> Row:
        row = _row(model)
        row["subtasks"] = [_row(s) for s in model.subtasks]
        return row

    @staticmethod
    def _subtask_models(subtasks: List[Row]) -> List[SubtaskModel]:
        return [
            SubtaskModel(title=s["title"], completed=s.get("completed", False), position=position)
            for position, s in enumerate(subtasks)
        ]

    async def _load(self, session, user_id: str, task_id: str) -> Optional[TaskModel]:
        result = await session.execute(
            select(TaskModel)
            .options(selectinload(TaskModel.subtasks))
            .where(TaskModel.id == task_id, TaskModel.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def select_for_user(self, user_id: str) -> List[Row]:
        """All tasks of a user with nested subtasks, newest first"""
        session = self._get_session()
        async with session:
            result = await session.execute(
                select(TaskModel)
                .options(selectinload(TaskModel.subtasks))
                .where(TaskModel.user_id == user_id)
                .order_by(TaskModel.created_at.desc())
            )
            return [self._task_row(m) for m in result.scalars().all()]

    async def insert(self, user_id: str, values: Row) -> Row:
        session = self._get_session()
        async with session:
            model = TaskModel(**_writable(TaskModel, values), user_id=user_id)
            model.subtasks = self._subtask_models(values.get("subtasks") or [])
            session.add(model)
            await session.commit()
            return self._task_row(await self._load(session, user_id, model.id))

    async def update(self, user_id: str, task_id: str, values: Row) -> Optional[Row]:
        """
        Apply a partial update in a single transaction.

        A "subtasks" key replaces the task's subtask list.
        """
        session = self._get_session()
        async with session:
            model = await self._load(session, user_id, task_id)
            if model is None:
                return None

            for key, value in _writable(TaskModel, values).items():
                setattr(model, key, value)
            if "subtasks" in values:
                model.subtasks = self._subtask_models(values["subtasks"] or [])

            await session.commit()
            return self._task_row(await self._load(session, user_id, task_id))

    async def delete(self, user_id: str, task_id: str) -> int:
        session = self._get_session()
        async with session:
            result = await session.execute(
                delete(TaskModel).where(TaskModel.id == task_id, TaskModel.user_id == user_id)
            )
            await session.commit()
            return result.rowcount


class HabitEntryRepository(_Repository):
    """
    Handles the habit_entries collection.

    Inserting a second entry for the same habit and day raises IntegrityError
    (unique constraint uq_habit_entries_habit_date).
    """

    async def select_for_user(self, user_id: str) -> List[Row]:
        """All entries of a user, newest day first"""
        session = self._get_session()
        async with session:
            result = await session.execute(
                select(HabitEntryModel)
                .where(HabitEntryModel.user_id == user_id)
                .order_by(HabitEntryModel.date.desc(), HabitEntryModel.created_at.desc())
            )
            return [_row(m) for m in result.scalars().all()]

    async def insert(self, user_id: str, values: Row) -> Row:
        session = self._get_session()
        async with session:
            habit = await session.execute(
                select(HabitModel.id).where(HabitModel.id == values.get("habit_id"),
                                            HabitModel.user_id == user_id)
            )
            if habit.scalar_one_or_none() is None:
                raise LookupError(f"Habit {values.get('habit_id')} not found")

            model = HabitEntryModel(**_writable(HabitEntryModel, values), user_id=user_id)
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _row(model)
