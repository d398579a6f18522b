"""
Tests for the dashboard and analytics aggregates.
"""

import datetime
import pytest

from habitflow.domain.models import Habit, HabitEntry, Task
from habitflow.services.analytics_service import AnalyticsService
from habitflow.services.state import AppState, ReplaceAll, reduce

TODAY = datetime.date(2026, 10, 19)
NOW = datetime.datetime(2026, 10, 19, 12, 0)


def day(days_ago: int) -> datetime.date:
    return TODAY - datetime.timedelta(days=days_ago)


def entries_for(habit_id: str, days_ago) -> list:
    return [HabitEntry(id=f"{habit_id}-{d}", habit_id=habit_id, date=day(d)) for d in days_ago]


@pytest.fixture
def state():
    habits = [
        Habit(id="run", name="Run", category="Fitness", color="#10B981"),
        Habit(id="read", name="Read", category="Learning"),
    ]
    entries = entries_for("run", range(0, 15)) + entries_for("read", [1, 2, 40])
    tasks = [
        Task(id="t1", title="Pay rent", category="Finance", priority="high",
             due_date=datetime.datetime(2026, 10, 15, 9, 0)),
        Task(id="t2", title="Call mom", category="Personal", priority="high",
             due_date=datetime.datetime(2026, 10, 21, 9, 0)),
        Task(id="t3", title="Renew passport", category="Personal", priority="medium",
             due_date=datetime.datetime(2026, 10, 20, 9, 0)),
        Task(id="t4", title="Buy milk", category="Personal", priority="high",
             completed=True, completed_at=datetime.datetime(2026, 10, 19, 8, 0)),
        Task(id="t5", title="File taxes", category="Finance", priority="high",
             completed=True, completed_at=datetime.datetime(2026, 9, 3, 8, 0),
             due_date=datetime.datetime(2026, 9, 1)),
    ]
    return reduce(AppState(), ReplaceAll(habits=habits, tasks=tasks, habit_entries=entries))


def test_dashboard_stats(state):
    stats = AnalyticsService(state, today=TODAY).dashboard_stats(now=NOW)

    assert stats.total_habits == 2
    assert stats.completed_habits_today == 1
    assert stats.total_tasks == 5
    assert stats.completed_tasks == 2
    assert stats.pending_tasks == 3
    assert stats.overdue_tasks == 1
    assert stats.longest_streak == 15
    # Run 15/30 = 50, Read 2/30 = 7 (6.67), mean 28.5 rounds to 29
    assert stats.avg_completion_rate == 29


def test_dashboard_stats_empty():
    stats = AnalyticsService(AppState(), today=TODAY).dashboard_stats(now=NOW)
    assert stats.total_habits == 0
    assert stats.longest_streak == 0
    assert stats.avg_completion_rate == 0


def test_recent_activity(state):
    activity = AnalyticsService(state, today=TODAY).recent_activity(days=7)

    assert [a.date for a in activity] == [day(d) for d in range(6, -1, -1)]
    assert activity[-1].label == "Today"
    assert activity[-2].label == "Yesterday"
    assert activity[-1].habits == 1
    assert activity[-1].tasks == 1
    assert activity[-2].habits == 2


def test_upcoming_tasks(state):
    upcoming = AnalyticsService(state, today=TODAY).upcoming_tasks(limit=2)
    assert [t.id for t in upcoming] == ["t1", "t3"]


def test_habit_stats_sorted_by_rate(state):
    stats = AnalyticsService(state, today=TODAY).habit_stats()

    assert [s.habit_id for s in stats] == ["run", "read"]
    assert stats[0].streak == 15
    assert stats[0].completion_rate == 50
    assert stats[0].color == "#10B981"
    assert stats[1].streak == 0


def test_monthly_activity(state):
    months = AnalyticsService(state, today=TODAY).monthly_activity(months=3)

    assert [m.month for m in months] == ["2026-08", "2026-09", "2026-10"]
    assert [m.label for m in months] == ["Aug", "Sep", "Oct"]
    assert months[1].habits == 1
    assert months[1].tasks == 1
    assert months[2].habits == 17
    assert months[2].tasks == 1


def test_monthly_activity_crosses_year():
    months = AnalyticsService(AppState(), today=datetime.date(2026, 2, 10)).monthly_activity(months=3)
    assert [m.month for m in months] == ["2025-12", "2026-01", "2026-02"]


def test_task_priority_breakdown(state):
    breakdown = AnalyticsService(state, today=TODAY).task_priority_breakdown()
    assert breakdown == {"high": 4, "medium": 1}
    assert list(breakdown) == ["high", "medium"]


@pytest.mark.parametrize("year,length", [(2026, 365), (2028, 366)])
def test_heatmap_covers_the_year(state, year, length):
    cells = AnalyticsService(state, today=TODAY).heatmap("run", year=year)
    assert len(cells) == length
    assert cells[0][0] == datetime.date(year, 1, 1)


def test_heatmap_intensity(state):
    cells = dict(AnalyticsService(state, today=TODAY).heatmap("run"))
    assert cells[TODAY] == 1
    assert cells[day(20)] == 0


class TestFilters:

    def test_task_status_filters(self, state):
        analytics = AnalyticsService(state, today=TODAY)
        assert [t.id for t in analytics.filter_tasks(now=NOW)] == ["t1", "t2", "t3", "t4", "t5"]
        assert [t.id for t in analytics.filter_tasks(status="completed", now=NOW)] == ["t4", "t5"]
        assert [t.id for t in analytics.filter_tasks(status="pending", now=NOW)] == ["t1", "t2", "t3"]
        assert [t.id for t in analytics.filter_tasks(status="overdue", now=NOW)] == ["t1"]

    def test_task_priority_and_search(self, state):
        analytics = AnalyticsService(state, today=TODAY)
        assert [t.id for t in analytics.filter_tasks(priority="medium", now=NOW)] == ["t3"]
        assert [t.id for t in analytics.filter_tasks(search="  PAY ", now=NOW)] == ["t1"]
        assert [t.id for t in analytics.filter_tasks(search="a", status="pending", priority="high",
                                                     now=NOW)] == ["t1", "t2"]

    def test_task_search_covers_description(self):
        task = Task(id="t1", title="Errands", category="Personal", description="Pick up the dry cleaning")
        state = reduce(AppState(), ReplaceAll(tasks=[task]))
        assert AnalyticsService(state).filter_tasks(search="cleaning") == [task]
        assert AnalyticsService(state).filter_tasks(search="groceries") == []

    def test_unknown_filter_values(self, state):
        with pytest.raises(ValueError):
            AnalyticsService(state).filter_tasks(status="archived")
        with pytest.raises(ValueError):
            AnalyticsService(state).filter_tasks(priority="urgent")

    def test_task_status_counts(self, state):
        counts = AnalyticsService(state, today=TODAY).task_status_counts(now=NOW)
        assert counts == {"total": 5, "completed": 2, "pending": 3, "overdue": 1}

    def test_habit_filters(self):
        habits = [
            Habit(id="run", name="Run", category="Fitness", description="Morning 5k"),
            Habit(id="read", name="Read", category="Learning"),
            Habit(id="lift", name="Lift", category="Fitness"),
        ]
        analytics = AnalyticsService(reduce(AppState(), ReplaceAll(habits=habits)))

        assert [h.id for h in analytics.filter_habits()] == ["run", "read", "lift"]
        assert [h.id for h in analytics.filter_habits(category="Fitness")] == ["run", "lift"]
        assert [h.id for h in analytics.filter_habits(search="morning")] == ["run"]
        assert [h.id for h in analytics.filter_habits(search="r", category="Learning")] == ["read"]
        assert analytics.habit_categories() == ["Fitness", "Learning"]
