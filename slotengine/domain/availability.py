"""
Availability pipeline: schedule entries and busy time in, slots out.

Composes range building, busy-time subtraction and slot generation. Every
function here is a pure function of its arguments.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from pendulum import DateTime

from .date_ranges import subtract
from .models import (
    AvailabilityEntry,
    AvailabilityQuery,
    AvailabilityResult,
    Booking,
    TimeRange,
)
from .slot_generator import get_slots
from .timezones import in_zone, to_instant
from .working_hours import build_date_ranges

logger = logging.getLogger(__name__)


def _normalize_busy_times(busy_times: Iterable[TimeRange]) -> List[TimeRange]:
    """Bring busy ranges onto pendulum instants and drop empty ones."""
    normalized: List[TimeRange] = []

    for busy in busy_times:
        time_range = TimeRange(start=to_instant(busy.start), end=to_instant(busy.end))
        if not time_range.is_empty:
            normalized.append(time_range)

    return normalized


def get_availability(
    query: AvailabilityQuery,
    busy_times: Iterable[TimeRange] = (),
    now: Optional[DateTime] = None
) -> AvailabilityResult:
    """
    Compute bookable slots and the free ranges they come from.

    Args:
        query: Schedule, timezone, window and slot settings
        busy_times: Busy ranges from bookings and connected calendars
        now: Current instant used for the minimum booking notice

    Returns:
        AvailabilityResult with slots in emission order and free ranges
    """
    date_ranges = build_date_ranges(
        query.availability,
        query.timezone,
        in_zone(query.date_from, query.timezone),
        in_zone(query.date_to, query.timezone),
    )

    busy_ranges = _normalize_busy_times(busy_times)
    available_ranges = subtract(date_ranges, busy_ranges)

    slots = get_slots(
        date_ranges=available_ranges,
        frequency=query.frequency,
        event_length=query.event_length,
        timezone=query.timezone,
        minimum_booking_notice=query.minimum_booking_notice,
        offset_start=query.offset_start,
        now=now,
    )

    logger.debug(
        "Availability for %s: %d range(s), %d busy, %d free, %d slot(s)",
        query.timezone,
        len(date_ranges),
        len(busy_ranges),
        len(available_ranges),
        len(slots),
    )

    return AvailabilityResult(slots=slots, date_ranges=available_ranges)


def is_slot_available(
    slot_start: datetime,
    slot_end: datetime,
    availability: Sequence[AvailabilityEntry],
    timezone: str,
    busy_times: Iterable[TimeRange] = ()
) -> bool:
    """
    Check whether ``[slot_start, slot_end]`` fits inside the free time of its day.

    Only the calendar day(s) the candidate touches, in the schedule's
    timezone, are built. Minimum booking notice is not applied.
    """
    start = in_zone(slot_start, timezone)
    end = in_zone(slot_end, timezone)

    date_ranges = build_date_ranges(
        availability,
        timezone,
        start.start_of("day"),
        end.start_of("day").add(days=1),
    )
    available_ranges = subtract(date_ranges, _normalize_busy_times(busy_times))

    return any(time_range.contains(start, end) for time_range in available_ranges)


def busy_times_from_bookings(bookings: Iterable[Booking]) -> List[TimeRange]:
    """Busy ranges of all bookings that are neither cancelled nor rejected."""
    return _normalize_busy_times(
        TimeRange(start=booking.start, end=booking.end)
        for booking in bookings
        if booking.is_active
    )
