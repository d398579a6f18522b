"""Domain layer - Pure business entities and logic"""

from .models import Habit, Task, SubTask, HabitEntry, HabitUpdate, TaskUpdate, Frequency, Priority, UserPreferences
from .metrics import calculate_streak, get_habit_completion_rate, is_habit_completed_today

__all__ = [
    "Habit", "Task", "SubTask", "HabitEntry", "HabitUpdate", "TaskUpdate",
    "Frequency", "Priority", "UserPreferences",
    "calculate_streak", "get_habit_completion_rate", "is_habit_completed_today",
]
