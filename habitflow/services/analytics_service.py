"""
Analytics Service - dashboard and chart aggregates.

Read-only views over an AppState snapshot, built on the metric functions.
Nothing here touches the backend.
"""

import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from habitflow.domain.metrics import (calculate_streak, get_habit_completion_rate,
                                      get_heatmap_intensity, is_habit_completed_today)
from habitflow.domain.models import Habit, Priority, Task
from habitflow.services.state import AppState
from habitflow.utils import format_date


class DashboardStats(BaseModel):
    total_habits: int
    completed_habits_today: int
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    overdue_tasks: int
    longest_streak: int
    avg_completion_rate: int


class DailyActivity(BaseModel):
    date: datetime.date
    label: str
    habits: int
    tasks: int


class MonthlyActivity(BaseModel):
    month: str  # "2026-10"
    label: str  # "Oct"
    habits: int
    tasks: int


class HabitStat(BaseModel):
    habit_id: str
    name: str
    streak: int
    completion_rate: int
    color: str


class TaskStatusFilter(str, Enum):
    ALL = "all"
    COMPLETED = "completed"
    PENDING = "pending"
    OVERDUE = "overdue"


def _is_overdue(task: Task, now: datetime.datetime) -> bool:
    return not task.completed and task.due_date is not None and task.due_date < now


def _matches_search(search: str, *texts: Optional[str]) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    return any(needle in text.lower() for text in texts if text)


class AnalyticsService:
    """
    Computes the numbers shown on the dashboard and analytics pages.
    """

    def __init__(self, state: AppState, today: Optional[datetime.date] = None,
                 window_days: int = 30):
        self.state = state
        self.today = today or datetime.date.today()
        self.window_days = window_days

    def _completed_on(self, task: Task) -> Optional[datetime.date]:
        return task.completed_at.date() if task.completed_at else None

    def dashboard_stats(self, now: Optional[datetime.datetime] = None) -> DashboardStats:
        now = now or datetime.datetime.now()
        habits = self.state.habit_list()
        tasks = self.state.task_list()
        entries = self.state.entry_list()

        completed_tasks = sum(1 for t in tasks if t.completed)
        overdue = sum(1 for t in tasks if _is_overdue(t, now))

        streaks = [calculate_streak(entries, h.id, today=self.today) for h in habits]
        rates = [get_habit_completion_rate(entries, h.id, self.window_days, today=self.today) for h in habits]

        return DashboardStats(
            total_habits=len(habits),
            completed_habits_today=sum(
                1 for h in habits if is_habit_completed_today(entries, h.id, today=self.today)),
            total_tasks=len(tasks),
            completed_tasks=completed_tasks,
            pending_tasks=len(tasks) - completed_tasks,
            overdue_tasks=overdue,
            longest_streak=max(streaks, default=0),
            # Mean rounded half up
            avg_completion_rate=(2 * sum(rates) + len(rates)) // (2 * len(rates)) if rates else 0,
        )

    def recent_activity(self, days: int = 7) -> List[DailyActivity]:
        """Entries logged and tasks completed per day, oldest day first"""
        entries = self.state.entry_list()
        tasks = self.state.task_list()

        activity = []
        for offset in range(days - 1, -1, -1):
            day = self.today - datetime.timedelta(days=offset)
            activity.append(DailyActivity(
                date=day,
                label=format_date(day, today=self.today),
                habits=sum(1 for e in entries if e.date == day),
                tasks=sum(1 for t in tasks if self._completed_on(t) == day),
            ))
        return activity

    def upcoming_tasks(self, limit: int = 5) -> List[Task]:
        """Open tasks with a due date, soonest first"""
        open_tasks = [t for t in self.state.task_list() if not t.completed and t.due_date]
        return sorted(open_tasks, key=lambda t: t.due_date)[:limit]

    def habit_stats(self) -> List[HabitStat]:
        """Per-habit streak and completion rate, best rate first"""
        entries = self.state.entry_list()
        stats = [
            HabitStat(
                habit_id=h.id,
                name=h.name,
                streak=calculate_streak(entries, h.id, today=self.today),
                completion_rate=get_habit_completion_rate(entries, h.id, self.window_days, today=self.today),
                color=h.color,
            )
            for h in self.state.habit_list()
        ]
        return sorted(stats, key=lambda s: s.completion_rate, reverse=True)

    def monthly_activity(self, months: int = 12) -> List[MonthlyActivity]:
        """Entries and completed tasks per calendar month, oldest month first"""
        entries = self.state.entry_list()
        tasks = self.state.task_list()

        result = []
        for offset in range(months - 1, -1, -1):
            # Step back whole months from the current one
            index = self.today.year * 12 + self.today.month - 1 - offset
            year, month = divmod(index, 12)
            month += 1
            first = datetime.date(year, month, 1)
            result.append(MonthlyActivity(
                month=f"{year:04d}-{month:02d}",
                label=first.strftime("%b"),
                habits=sum(1 for e in entries if (e.date.year, e.date.month) == (year, month)),
                tasks=sum(
                    1 for t in tasks
                    if t.completed_at and (t.completed_at.year, t.completed_at.month) == (year, month)
                ),
            ))
        return result

    def task_priority_breakdown(self) -> Dict[str, int]:
        """Task count per priority (high, medium, low), empty buckets left out"""
        counts = {p.value: 0 for p in (Priority.HIGH, Priority.MEDIUM, Priority.LOW)}
        for task in self.state.task_list():
            counts[task.priority] = counts.get(task.priority, 0) + 1
        return {name: count for name, count in counts.items() if count > 0}

    def heatmap(self, habit_id: str, year: Optional[int] = None) -> List[Tuple[datetime.date, int]]:
        """(day, intensity 0..4) for every day of the year"""
        year = year or self.today.year
        entries = self.state.entries_for(habit_id)

        cells = []
        day = datetime.date(year, 1, 1)
        while day.year == year:
            cells.append((day, get_heatmap_intensity(entries, habit_id, day)))
            day += datetime.timedelta(days=1)
        return cells

    # ── Filters (task and habit lists) ────────────────────────

    def filter_tasks(self, search: str = "", status: str = "all", priority: str = "all",
                     now: Optional[datetime.datetime] = None) -> List[Task]:
        """
        Tasks matching a text search and the status and priority filters.

        Args:
            search: Case-insensitive text looked up in title and description
            status: "all", "completed", "pending" or "overdue"
            priority: "all" or one of the priorities
        """
        status = TaskStatusFilter(status)
        if priority != "all":
            priority = Priority(priority).value
        now = now or datetime.datetime.now()

        def matches_status(task: Task) -> bool:
            if status == TaskStatusFilter.COMPLETED:
                return task.completed
            if status == TaskStatusFilter.PENDING:
                return not task.completed
            if status == TaskStatusFilter.OVERDUE:
                return _is_overdue(task, now)
            return True

        return [
            t for t in self.state.task_list()
            if _matches_search(search, t.title, t.description)
            and matches_status(t)
            and (priority == "all" or t.priority == priority)
        ]

    def task_status_counts(self, now: Optional[datetime.datetime] = None) -> Dict[str, int]:
        now = now or datetime.datetime.now()
        tasks = self.state.task_list()
        completed = sum(1 for t in tasks if t.completed)
        return {
            "total": len(tasks),
            "completed": completed,
            "pending": len(tasks) - completed,
            "overdue": sum(1 for t in tasks if _is_overdue(t, now)),
        }

    def filter_habits(self, search: str = "", category: str = "all") -> List[Habit]:
        """Habits whose name or description contains `search`, optionally in one category"""
        return [
            h for h in self.state.habit_list()
            if _matches_search(search, h.name, h.description)
            and (category == "all" or h.category == category)
        ]

    def habit_categories(self) -> List[str]:
        """Distinct habit categories in first-seen order"""
        return list(dict.fromkeys(h.category for h in self.state.habit_list()))
