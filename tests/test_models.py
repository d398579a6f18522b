"""
Tests for domain model validation and the row mapping layer.
"""

import datetime
import pytest
from pydantic import ValidationError

from habitflow.domain.models import Frequency, Habit, HabitEntry, HabitUpdate, Priority, Task, TaskUpdate
from habitflow.infra.mapping import habit_from_row, habit_to_row, map_rows, task_from_row


class TestHabit:

    def test_defaults(self):
        habit = Habit(name="Read", category="Learning")
        assert habit.frequency == Frequency.DAILY
        assert habit.target_count == 1
        assert habit.is_active is True
        assert habit.color == "#3B82F6"
        assert habit.id is None

    @pytest.mark.parametrize("field,value", [
        ("name", ""),
        ("name", "   "),
        ("category", ""),
        ("target_count", 0),
        ("frequency", "hourly"),
    ])
    def test_rejects_invalid_values(self, field, value):
        data = {"name": "Read", "category": "Learning", field: value}
        with pytest.raises(ValidationError):
            Habit(**data)

    def test_accepts_camel_case_keys(self):
        habit = Habit.model_validate({
            "name": "Run", "category": "Fitness", "targetCount": 2, "isActive": False,
            "createdAt": "2026-10-01T08:00:00",
        })
        assert habit.target_count == 2
        assert habit.is_active is False
        assert habit.created_at == datetime.datetime(2026, 10, 1, 8, 0)

    def test_blank_description_becomes_none(self):
        assert Habit(name="Run", category="Fitness", description="  ").description is None


class TestTask:

    def test_completed_requires_completed_at(self):
        with pytest.raises(ValidationError):
            Task(title="Pay rent", category="Finance", completed=True)

    def test_completed_at_requires_completed(self):
        with pytest.raises(ValidationError):
            Task(title="Pay rent", category="Finance", completed_at=datetime.datetime.now())

    def test_completed_pair(self):
        done = datetime.datetime(2026, 10, 19, 9, 30)
        task = Task(title="Pay rent", category="Finance", completed=True, completed_at=done)
        assert task.completed_at == done
        assert task.priority == Priority.MEDIUM

    def test_aware_timestamps_become_local_naive(self):
        task = Task.model_validate({
            "title": "Pay rent", "category": "Finance", "completed": True,
            "dueDate": "2026-10-10T00:00:00.000Z",
            "completedAt": datetime.datetime(2026, 10, 9, 18, 0, tzinfo=datetime.timezone.utc),
        })
        instant = datetime.datetime(2026, 10, 10, tzinfo=datetime.timezone.utc)
        assert task.due_date == instant.astimezone().replace(tzinfo=None)
        assert task.due_date.tzinfo is None
        assert task.completed_at.tzinfo is None
        # Naive values are taken as local time already
        assert Task(title="Pay rent", category="Finance",
                    due_date=datetime.datetime(2026, 10, 10, 9, 0)).due_date == datetime.datetime(2026, 10, 10, 9, 0)

    def test_subtasks_keep_order(self):
        task = Task(title="Move", category="Personal",
                    subtasks=[{"title": "Pack"}, {"title": "Ship"}, {"title": "Unpack"}])
        assert [s.title for s in task.subtasks] == ["Pack", "Ship", "Unpack"]


class TestHabitEntry:

    def test_datetime_reduced_to_day(self):
        entry = HabitEntry(habit_id="h1", date=datetime.datetime(2026, 10, 19, 23, 59))
        assert entry.date == datetime.date(2026, 10, 19)

    def test_iso_timestamp_string(self):
        entry = HabitEntry.model_validate({"habitId": "h1", "date": "2026-10-19T06:00:00"})
        assert entry.date == datetime.date(2026, 10, 19)

    def test_utc_timestamp_uses_local_day(self):
        entry = HabitEntry.model_validate({"habitId": "h1", "date": "2026-10-18T22:00:00.000Z"})
        instant = datetime.datetime(2026, 10, 18, 22, 0, tzinfo=datetime.timezone.utc)
        assert entry.date == instant.astimezone().date()

    def test_count_must_be_positive(self):
        with pytest.raises(ValidationError):
            HabitEntry(habit_id="h1", date=datetime.date(2026, 10, 19), count=0)


class TestPartialUpdates:

    def test_only_set_fields_are_sent(self):
        assert HabitUpdate(name="Walk").changes() == {"name": "Walk"}

    def test_explicit_none_is_sent(self):
        assert HabitUpdate(description=None).changes() == {"description": None}

    def test_enum_values_are_plain_strings(self):
        assert TaskUpdate(priority="high").changes() == {"priority": "high"}


class TestMapping:

    def test_habit_row_round_trip(self):
        row = {
            "id": "h1", "user_id": "alice", "name": "Run", "description": None,
            "frequency": "weekly", "target_count": 3, "category": "Fitness",
            "color": "#10B981", "is_active": True,
            "created_at": datetime.datetime(2026, 10, 1), "updated_at": datetime.datetime(2026, 10, 2),
        }
        habit = habit_from_row(row)
        assert habit.id == "h1"
        assert habit.frequency == "weekly"
        assert "id" not in habit_to_row(habit)
        assert "created_at" not in habit_to_row(habit)

    def test_task_row_with_subtasks(self):
        row = {
            "id": "t1", "title": "Move", "category": "Personal", "priority": "low",
            "completed": False, "completed_at": None, "due_date": None,
            "created_at": datetime.datetime(2026, 10, 1),
            "subtasks": [{"id": "s1", "task_id": "t1", "title": "Pack", "completed": True, "position": 0}],
        }
        task = task_from_row(row)
        assert task.subtasks[0].title == "Pack"
        assert task.subtasks[0].completed is True

    def test_task_row_without_subtasks(self):
        row = {"id": "t1", "title": "Move", "category": "Personal", "completed": False, "subtasks": None}
        assert task_from_row(row).subtasks == []

    def test_malformed_rows_are_skipped(self):
        rows = [
            {"id": "h1", "name": "Run", "category": "Fitness"},
            {"id": "h2", "name": "", "category": "Fitness"},
            {"id": "h3", "name": "Read", "category": "Learning", "target_count": "many"},
        ]
        habits = map_rows(rows, habit_from_row, "habit")
        assert [h.id for h in habits] == ["h1"]
