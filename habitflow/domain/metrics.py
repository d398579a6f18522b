"""
Derived habit metrics.

Pure functions over a list of HabitEntry records: no I/O, no exceptions.
Missing data yields 0 / False / None. "Today" is the local calendar day
unless the caller pins it.
"""

import datetime
from typing import Iterable, List, Optional

from .models import HabitEntry

MAX_HEATMAP_INTENSITY = 4


def _entries_for(entries: Iterable[HabitEntry], habit_id: str) -> List[HabitEntry]:
    return [entry for entry in entries if entry.habit_id == habit_id]


def calculate_streak(entries: Iterable[HabitEntry], habit_id: str,
                     today: Optional[datetime.date] = None) -> int:
    """
    Count consecutive days with an entry, walking backward from today.

    A missing entry for today yields 0. Several entries on one day count
    once, and future-dated entries are ignored.
    """
    current = today or datetime.date.today()
    hit_days = {entry.date for entry in _entries_for(entries, habit_id) if entry.date <= current}

    streak = 0
    while current in hit_days:
        streak += 1
        current -= datetime.timedelta(days=1)
    return streak


def get_habit_completion_rate(entries: Iterable[HabitEntry], habit_id: str,
                              window_days: int = 30,
                              today: Optional[datetime.date] = None) -> int:
    """
    Percentage of the trailing window covered by entries, rounded half up.

    The window is the `window_days` calendar days ending today. Entries are
    counted, not days. Habits younger than the window are not prorated.
    """
    if window_days <= 0:
        return 0
    end = today or datetime.date.today()
    start = end - datetime.timedelta(days=window_days - 1)
    hits = sum(1 for entry in _entries_for(entries, habit_id) if start <= entry.date <= end)

    # round(100 * hits / window_days) with halves going up
    return (200 * hits + window_days) // (2 * window_days)


def is_habit_completed_today(entries: Iterable[HabitEntry], habit_id: str,
                             today: Optional[datetime.date] = None) -> bool:
    day = today or datetime.date.today()
    return any(entry.habit_id == habit_id and entry.date == day for entry in entries)


def get_habit_entry_for_date(entries: Iterable[HabitEntry], habit_id: str,
                             day: datetime.date) -> Optional[HabitEntry]:
    """Return the habit's entry for a given day, if any"""
    for entry in entries:
        if entry.habit_id == habit_id and entry.date == day:
            return entry
    return None


def get_heatmap_intensity(entries: Iterable[HabitEntry], habit_id: str,
                          day: datetime.date) -> int:
    """Heatmap cell level 0..4 for one day (the logged count, capped)"""
    entry = get_habit_entry_for_date(entries, habit_id, day)
    return min(entry.count, MAX_HEATMAP_INTENSITY) if entry else 0
