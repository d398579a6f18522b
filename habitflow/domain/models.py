"""
Domain Models using Pydantic for validation.

Architecture Decision: Why Pydantic?
Records cross two boundaries: the persistence backend (snake_case rows) and
exported JSON documents (camelCase keys). Pydantic validates both shapes into
the same typed models, so nothing downstream has to trust raw dictionaries.
"""

import datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import (AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter, field_validator,
                      model_validator)
from pydantic.alias_generators import to_camel


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


DEFAULT_HABIT_COLOR = "#3B82F6"


def to_local_naive(value: datetime.datetime) -> datetime.datetime:
    """Aware timestamps (e.g. "...Z" from a JSON export) become naive local time"""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


# All stored and compared timestamps are naive local time
LocalDateTime = Annotated[datetime.datetime, AfterValidator(to_local_naive)]

_DATETIME = TypeAdapter(datetime.datetime)


class DomainModel(BaseModel):
    """Shared configuration: camelCase aliases for JSON, snake_case in Python."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        validate_default=True,
    )


class Habit(DomainModel):
    """
    A recurring action the user tracks.

    Inactive habits keep their history but are excluded from current tracking.
    """
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    frequency: Frequency = Frequency.DAILY
    target_count: int = Field(default=1, ge=1)
    category: str = Field(..., min_length=1, max_length=100)
    color: str = DEFAULT_HABIT_COLOR
    is_active: bool = True

    # Assigned by the backend on insert, never changed afterwards
    created_at: Optional[LocalDateTime] = None

    @field_validator("description", mode="before")
    @classmethod
    def _empty_description_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SubTask(DomainModel):
    id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=200)
    completed: bool = False


class Task(DomainModel):
    """
    A one-off unit of work with an optional deadline and subtasks.

    completed_at is present exactly when completed is true.
    """
    id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    category: str = Field(..., min_length=1, max_length=100)
    due_date: Optional[LocalDateTime] = None
    completed: bool = False
    completed_at: Optional[LocalDateTime] = None
    created_at: Optional[LocalDateTime] = None
    subtasks: List[SubTask] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def _empty_description_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_completion(self) -> "Task":
        if self.completed != (self.completed_at is not None):
            raise ValueError("completed_at must be set exactly when completed is true")
        return self


class HabitEntry(DomainModel):
    """
    One log record: the habit was performed on a calendar day.

    At most one entry exists per (habit_id, date); the backend enforces it.
    """
    id: Optional[str] = None
    habit_id: str = Field(..., min_length=1)
    date: datetime.date
    count: int = Field(default=1, ge=1)
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _to_calendar_day(cls, value):
        if isinstance(value, str) and "T" in value:
            value = _DATETIME.validate_python(value)
        if isinstance(value, datetime.datetime):
            return to_local_naive(value).date()
        return value


class HabitUpdate(DomainModel):
    """Partial update for a habit. Only explicitly set fields are sent."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    target_count: Optional[int] = Field(default=None, ge=1)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = None
    is_active: Optional[bool] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class TaskUpdate(DomainModel):
    """Partial update for a task. A given subtasks list replaces the current one."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    due_date: Optional[LocalDateTime] = None
    completed: Optional[bool] = None
    completed_at: Optional[LocalDateTime] = None
    subtasks: Optional[List[SubTask]] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class UserPreferences(BaseModel):
    """
    User configuration and preferences.

    This allows users to customize behavior without touching code.
    """
    model_config = ConfigDict(from_attributes=True)

    completion_window_days: int = Field(default=30, ge=1, description="Trailing window for completion rates")
    week_starts_on: int = Field(default=0, ge=0, le=6, description="First weekday (0=Monday)")
    upcoming_tasks_limit: int = Field(default=5, ge=1, description="Tasks shown in the upcoming list")

    # Backup settings
    backup_directory: Optional[str] = Field(default=None, description="Custom backup directory path")
    backup_retention_count: int = Field(default=5, ge=1, description="Number of backup files to keep")
