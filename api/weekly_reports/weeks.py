"""
ISO week helpers.

``monday_of`` rolls weeks past the last ISO week of a year into the next
year, so input coming from clients is bounded by ``weeks_in_year`` first.
"""

from datetime import date, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from django.utils import timezone

MIN_YEAR, MAX_YEAR = 2000, 2100
MIN_WEEK, MAX_WEEK = 1, 53


def monday_of(year: int, week: int) -> date:
    return date.fromisocalendar(year, 1, 1) + timedelta(weeks=week - 1)


def weeks_in_year(year: int) -> int:
    """52 or 53; 28 December always falls in the last ISO week"""
    return date(year, 12, 28).isocalendar()[1]


def iso_week_of(day: date) -> Tuple[int, int]:
    iso = day.isocalendar()
    return iso[0], iso[1]


def current_week(tz_name: Optional[str] = None) -> Tuple[int, int]:
    now = timezone.now().astimezone(ZoneInfo(tz_name)) if tz_name else timezone.localtime()
    return iso_week_of(now.date())


def shift_week(year: int, week: int, weeks: int) -> Tuple[int, int]:
    return iso_week_of(monday_of(year, week) + timedelta(weeks=weeks))


def previous_week(year: int, week: int) -> Tuple[int, int]:
    return shift_week(year, week, -1)


def week_date_range(year: int, week: int) -> dict:
    monday = monday_of(year, week)
    return {
        'start_date': monday.isoformat(),
        'end_date': (monday + timedelta(days=6)).isoformat(),
    }


def clamp(value, low, high):
    return max(low, min(high, value))


def resolve_week(year=None, week=None, tz_name: Optional[str] = None) -> Tuple[int, int]:
    """Parse optional year/week query values, clamped, defaulting to this week"""
    default_year, default_week = current_week(tz_name)
    try:
        year = int(year) if year not in (None, '') else default_year
    except (TypeError, ValueError):
        year = default_year
    try:
        week = int(week) if week not in (None, '') else default_week
    except (TypeError, ValueError):
        week = default_week
    year = clamp(year, MIN_YEAR, MAX_YEAR)
    return year, clamp(week, MIN_WEEK, weeks_in_year(year))


def missing_weeks(existing, until: Tuple[int, int]) -> list:
    """
    Weeks from the earliest of ``existing`` (year, week) pairs up to ``until``
    that have no entry, newest first.
    """
    existing = {(int(year), int(week)) for year, week in existing}
    if not existing:
        return []

    start_year, start_week = min(existing)
    cursor = monday_of(start_year, start_week)
    end = monday_of(*until)

    missing = []
    while cursor <= end:
        year, week = iso_week_of(cursor)
        if (year, week) not in existing:
            missing.append({'year': year, 'week': week, **week_date_range(year, week)})
        cursor += timedelta(weeks=1)

    missing.reverse()
    return missing
