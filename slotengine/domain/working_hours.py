"""
Turn schedule entries into concrete availability ranges.

Working hours rules are expanded day by day across the query window,
date overrides resolve to exactly one range for their date, and the two are
merged so an override replaces the recurring coverage of its date.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Sequence

from pendulum import DateTime

from .date_ranges import merge_by_date
from .models import AvailabilityEntry, DateOverride, TimeRange, WorkingHoursRule
from .timezones import in_zone, local_datetime, local_midnight, weekday_in_zone

logger = logging.getLogger(__name__)


def _is_end_of_day(hour: int, minute: int) -> bool:
    # 23:59 is how schedules spell "until midnight"
    return hour == 23 and minute == 59


def expand_working_hours(
    rules: Sequence[WorkingHoursRule],
    timezone: str,
    date_from: DateTime,
    date_to: DateTime
) -> List[TimeRange]:
    """
    Expand recurring weekly rules into per-day ranges within the window.

    Ranges from different rules that chain end-to-start are coalesced into a
    single range.
    """
    results: Dict[int, TimeRange] = {}

    for rule in rules:
        _add_rule_ranges(results, rule, timezone, date_from, date_to)

    return list(results.values())


def _add_rule_ranges(
    results: Dict[int, TimeRange],
    rule: WorkingHoursRule,
    timezone: str,
    date_from: DateTime,
    date_to: DateTime
) -> None:
    """
    Add one rule's ranges to ``results``, which is keyed by range end timestamp.
    """
    window_start = in_zone(date_from, timezone)
    window_end = in_zone(date_to, timezone)

    day = window_start.date()

    while True:
        midnight = local_midnight(day, timezone)
        if midnight >= window_end:
            break
        day = day.add(days=1)

        if weekday_in_zone(midnight, timezone) not in rule.days:
            continue

        # Resolved on the wall clock, so DST changes on this day (even one at
        # midnight) do not shift the boundaries
        start = local_datetime(midnight.date(), rule.start_time, timezone)
        end = local_datetime(midnight.date(), rule.end_time, timezone)

        start_result = max(start, window_start)
        end_result = min(end, window_end)

        if _is_end_of_day(end_result.hour, end_result.minute):
            end_result = end_result.add(minutes=1)

        if end_result <= start_result:
            continue

        start_key = start_result.int_timestamp
        end_key = end_result.int_timestamp

        if start_key in results:
            previous = results.pop(start_key)
            results[end_key] = TimeRange(
                start=previous.start,
                end=max(previous.end, end_result)
            )
        elif end_key in results:
            existing = results[end_key]
            results[end_key] = TimeRange(
                start=min(existing.start, start_result),
                end=existing.end
            )
        else:
            results[end_key] = TimeRange(start=start_result, end=end_result)


def resolve_date_override(override: DateOverride, timezone: str) -> TimeRange:
    """
    Resolve an override to a single range on its wall-clock date in ``timezone``.

    An end time of 23:59 means "until the end of the day" and resolves to the
    next local midnight.
    """
    start = local_datetime(override.date, override.start_time, timezone)

    if _is_end_of_day(override.end_time.hour, override.end_time.minute):
        end = local_midnight(override.date + timedelta(days=1), timezone)
    else:
        end = local_datetime(override.date, override.end_time, timezone)

    return TimeRange(start=start, end=end)


def build_date_ranges(
    availability: Sequence[AvailabilityEntry],
    timezone: str,
    date_from: DateTime,
    date_to: DateTime
) -> List[TimeRange]:
    """
    Build the availability ranges of a schedule for ``[date_from, date_to]``.

    Returns non-empty ranges sorted by start, clipped to the window.
    """
    window_start = in_zone(date_from, timezone)
    window_end = in_zone(date_to, timezone)

    rules = [entry for entry in availability if isinstance(entry, WorkingHoursRule)]
    overrides = [entry for entry in availability if isinstance(entry, DateOverride)]

    recurring = expand_working_hours(rules, timezone, window_start, window_end)

    # Override dates are plain calendar dates, so look one day past either edge
    first_day = window_start.date().subtract(days=1)
    last_day = window_end.date().add(days=1)
    override_ranges = [
        resolve_date_override(override, timezone)
        for override in overrides
        if first_day <= override.date <= last_day
    ]

    merged = merge_by_date(recurring, override_ranges, timezone)

    clipped: List[TimeRange] = []
    for time_range in merged:
        clipped_range = TimeRange(
            start=max(time_range.start, window_start),
            end=min(time_range.end, window_end)
        )
        if not clipped_range.is_empty:
            clipped.append(clipped_range)

    logger.debug(
        "Built %d availability range(s) from %d rule(s) and %d override(s) in %s",
        len(clipped),
        len(rules),
        len(override_ranges),
        timezone
    )

    return clipped
