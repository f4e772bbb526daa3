"""
Narrow timezone interface used by the interval algebra and slot logic.

Everything that needs to know about wall-clock readings, calendar dates or
weekdays goes through these helpers so the rest of the domain layer only
compares and shifts instants.
"""

from datetime import date, datetime, time

import pendulum
from pendulum import DateTime


def to_instant(value: datetime) -> DateTime:
    """
    Convert a stdlib or pendulum datetime into a pendulum DateTime.

    Naive datetimes are interpreted as UTC.
    """
    if isinstance(value, DateTime):
        return value
    return pendulum.instance(value)


def in_zone(instant: datetime, timezone: str) -> DateTime:
    """Return the wall-clock representation of an instant in ``timezone``."""
    return to_instant(instant).in_timezone(timezone)


def local_datetime(day: date, time_of_day: time, timezone: str) -> DateTime:
    """Resolve a wall-clock date and time in ``timezone`` to an instant."""
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        time_of_day.hour,
        time_of_day.minute,
        tz=timezone,
    )


def local_midnight(day: date, timezone: str) -> DateTime:
    """Return the instant at which ``day`` begins in ``timezone``."""
    return pendulum.datetime(day.year, day.month, day.day, tz=timezone)


def weekday_in_zone(instant: datetime, timezone: str) -> int:
    """
    Weekday of an instant as observed in ``timezone``.

    Uses the numbering stored with schedules: 0=Sunday, 1=Monday .. 6=Saturday.
    """
    # pendulum counts from Monday=0
    return (int(in_zone(instant, timezone).day_of_week) + 1) % 7


def calendar_date(instant: datetime, timezone: str) -> str:
    """Calendar date key (YYYY-MM-DD) of an instant in ``timezone``."""
    return in_zone(instant, timezone).to_date_string()
