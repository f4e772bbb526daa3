"""
Set operations over lists of time ranges.

Grouping by calendar date, date-keyed merging of recurring and override
coverage, N-way intersection and subtraction. All functions return new lists
and drop empty ranges they would otherwise produce.
"""

from typing import Dict, List, Sequence

from .models import TimeRange
from .timezones import calendar_date


def group_by_date(ranges: Sequence[TimeRange], timezone: str) -> Dict[str, List[TimeRange]]:
    """
    Bucket ranges by the calendar date of their start in ``timezone``.

    Keys are ``YYYY-MM-DD`` strings in first-seen order.
    """
    grouped: Dict[str, List[TimeRange]] = {}

    for time_range in ranges:
        key = calendar_date(time_range.start, timezone)
        grouped.setdefault(key, []).append(time_range)

    return grouped


def merge_by_date(
    recurring: Sequence[TimeRange],
    overrides: Sequence[TimeRange],
    timezone: str
) -> List[TimeRange]:
    """
    Combine recurring and override ranges, date by date.

    For every calendar date that has at least one override range, the
    override bucket replaces the recurring bucket entirely. Empty ranges are
    dropped only after merging, so an empty override still blanks its date.
    """
    merged = group_by_date(recurring, timezone)
    merged.update(group_by_date(overrides, timezone))

    flattened = [
        time_range
        for bucket in merged.values()
        for time_range in bucket
        if not time_range.is_empty
    ]

    return sorted(flattened, key=lambda r: r.start)


def intersect(range_lists: Sequence[Sequence[TimeRange]]) -> List[TimeRange]:
    """
    Find the time covered by every one of the given range lists.

    Lists are folded pairwise with a two-pointer walk; an empty intermediate
    result short-circuits to ``[]``.

    Example:
    A: [09:00-12:00, 13:00-17:00]
    B: [10:00-14:00]
    Result: [10:00-12:00, 13:00-14:00]
    """
    if not range_lists:
        return []

    common = sorted(
        (r for r in range_lists[0] if not r.is_empty),
        key=lambda r: r.start
    )

    for ranges in range_lists[1:]:
        if not common:
            return []

        other = sorted((r for r in ranges if not r.is_empty), key=lambda r: r.start)
        intersected: List[TimeRange] = []
        i = 0
        j = 0

        while i < len(common) and j < len(other):
            left = common[i]
            right = other[j]

            overlap = left.intersect(right)
            if overlap is not None:
                intersected.append(overlap)

            if left.end <= right.end:
                i += 1
            else:
                j += 1

        common = intersected

    return common


def subtract(
    source_ranges: Sequence[TimeRange],
    excluded_ranges: Sequence[TimeRange]
) -> List[TimeRange]:
    """
    Remove excluded time from each source range.

    Example:
    Source: 09:00 - 17:00
    Excluded: [10:00-11:00, 14:00-15:00]
    Result: [09:00-10:00, 11:00-14:00, 15:00-17:00]
    """
    result: List[TimeRange] = []
    sorted_excluded = sorted(
        (r for r in excluded_ranges if not r.is_empty),
        key=lambda r: r.start
    )

    for source in source_ranges:
        cursor = source.start

        for excluded in sorted_excluded:
            if excluded.start >= source.end:
                break
            if excluded.end <= cursor:
                continue

            if excluded.start > cursor:
                result.append(TimeRange(start=cursor, end=excluded.start))

            cursor = max(cursor, excluded.end)

        if source.end > cursor:
            result.append(TimeRange(start=cursor, end=source.end))

    return result
