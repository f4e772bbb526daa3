"""
Application service for computing availability against live busy data.

The service gathers busy times from existing bookings and from any number of
busy-time sources (calendar connectors), then delegates the actual
computation to the domain-level availability pipeline. Sources are described
by a simple protocol so real connectors and file-backed stand-ins plug in
the same way.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.availability import busy_times_from_bookings, get_availability, is_slot_available
from ..domain.exceptions import BusySourceError
from ..domain.models import (
    AvailabilityEntry,
    AvailabilityQuery,
    AvailabilityResult,
    Booking,
    TimeRange,
)
from ..domain.timezones import in_zone

logger = logging.getLogger(__name__)


class BusySourceProtocol(Protocol):
    """Protocol describing a source of externally busy time."""

    name: str

    def get_busy_times(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
    ) -> List[TimeRange]:
        """Return busy ranges overlapping ``[start_time, end_time]``."""


class AvailabilityService:
    """
    Orchestrates busy-time collection and slot calculation.
    """

    def __init__(self, busy_sources: Sequence[BusySourceProtocol] = ()) -> None:
        self._busy_sources = list(busy_sources)

    def find_slots(
        self,
        query: AvailabilityQuery,
        *,
        bookings: Iterable[Booking] = (),
        now: Optional[DateTime] = None,
    ) -> AvailabilityResult:
        """
        Collect busy data for the query window and compute available slots.
        """
        busy_times = self.collect_busy_times(
            start_time=query.date_from,
            end_time=query.date_to,
            timezone=query.timezone,
            bookings=bookings,
        )

        return get_availability(query, busy_times, now=now)

    def check_slot(
        self,
        *,
        slot_start: datetime,
        slot_end: datetime,
        availability: Sequence[AvailabilityEntry],
        timezone: str,
        bookings: Iterable[Booking] = (),
    ) -> bool:
        """
        Validate a requested booking time before it is committed.
        """
        start = in_zone(slot_start, timezone)
        end = in_zone(slot_end, timezone)

        busy_times = self.collect_busy_times(
            start_time=start.start_of("day"),
            end_time=end.start_of("day").add(days=1),
            timezone=timezone,
            bookings=bookings,
        )

        return is_slot_available(start, end, availability, timezone, busy_times)

    def collect_busy_times(
        self,
        *,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
        bookings: Iterable[Booking] = (),
    ) -> List[TimeRange]:
        """
        Merge booking-derived busy times with those of every busy source.

        A source that fails is logged and skipped; the remaining sources
        still contribute.
        """
        busy_times = busy_times_from_bookings(bookings)

        for source in self._busy_sources:
            source_name = getattr(source, "name", type(source).__name__)
            try:
                source_busy = source.get_busy_times(start_time, end_time, timezone)
            except BusySourceError as exc:
                logger.error("Failed to get busy times from %s: %s", source_name, exc)
                continue

            logger.debug("Busy source %s returned %d range(s)", source_name, len(source_busy))
            busy_times.extend(source_busy)

        return busy_times
