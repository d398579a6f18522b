import calendar
import datetime
from typing import List, Optional


def format_date(day: datetime.date, today: Optional[datetime.date] = None) -> str:
    """
    Human label for a day: "Today", "Yesterday" or e.g. "Oct 19, 2026".

    Args:
        day: Calendar day (a datetime is reduced to its date)
        today: Reference day, defaults to the local date
    """
    if isinstance(day, datetime.datetime):
        day = day.date()
    today = today or datetime.date.today()

    if day == today:
        return "Today"
    if day == today - datetime.timedelta(days=1):
        return "Yesterday"
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def format_time(moment: datetime.datetime) -> str:
    """12-hour clock without a leading zero, e.g. 9:05 AM"""
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment.minute:02d} {'AM' if moment.hour < 12 else 'PM'}"


def get_week_days(day: Optional[datetime.date] = None, week_starts_on: int = 0) -> List[datetime.date]:
    """The seven days of the week containing `day` (0 = weeks start on Monday)"""
    day = day or datetime.date.today()
    start = day - datetime.timedelta(days=(day.weekday() - week_starts_on) % 7)
    return [start + datetime.timedelta(days=i) for i in range(7)]


def get_days_in_month(day: Optional[datetime.date] = None) -> List[datetime.date]:
    day = day or datetime.date.today()
    _, last = calendar.monthrange(day.year, day.month)
    return [datetime.date(day.year, day.month, d) for d in range(1, last + 1)]


def is_date_in_range(day, start, end) -> bool:
    return start <= day <= end
