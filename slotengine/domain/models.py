"""
Domain models for availability and slot calculations.
"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Union

from pendulum import DateTime


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Ranges with ``start >= end`` are considered empty. They can be built
    but are dropped by every operation that produces ranges.
    """
    start: DateTime
    end: DateTime

    @property
    def is_empty(self) -> bool:
        """True when the range covers no time at all."""
        return self.start >= self.end

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def contains(self, start: DateTime, end: DateTime) -> bool:
        """Check if ``[start, end]`` lies completely inside this range."""
        return self.start <= start and end <= self.end

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class WorkingHoursRule:
    """
    Recurring weekly availability.

    ``days`` uses 0=Sunday .. 6=Saturday, times are wall-clock values in the
    schedule's timezone.
    """
    days: FrozenSet[int]
    start_time: time
    end_time: time


@dataclass(frozen=True)
class DateOverride:
    """
    One-off availability for a single calendar date.

    Replaces every working hours rule for that date. An override whose start
    equals its end marks the whole date as unavailable.
    """
    date: date
    start_time: time
    end_time: time


AvailabilityEntry = Union[WorkingHoursRule, DateOverride]


class BookingStatus(str, Enum):
    """Lifecycle states of a booking as stored by the booking layer."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


INACTIVE_BOOKING_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.REJECTED})


@dataclass(frozen=True)
class Booking:
    """An existing booking; only its time span and status matter here."""
    start: DateTime
    end: DateTime
    status: BookingStatus = BookingStatus.ACCEPTED

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_BOOKING_STATUSES


@dataclass(frozen=True)
class Slot:
    """
    A bookable start time. The slot ends ``event_length`` minutes later.
    """
    time: DateTime

    def end(self, event_length: int) -> DateTime:
        return self.time.add(minutes=event_length)

    def format_display(self, event_length: int) -> str:
        """Format as ``Mon, 25.11.2024 | 09:00 - 09:30``."""
        end = self.end(event_length)
        return f"{self.time.format('ddd, DD.MM.YYYY')} | {self.time.format('HH:mm')} - {end.format('HH:mm')}"


@dataclass(frozen=True)
class AvailabilityQuery:
    """
    Everything needed to compute slots for one schedule and window.

    ``slot_interval`` is the cadence between slot starts; when unset it
    falls back to ``event_length``.
    """
    availability: Sequence[AvailabilityEntry]
    timezone: str
    date_from: DateTime
    date_to: DateTime
    event_length: int
    slot_interval: Optional[int] = None
    minimum_booking_notice: int = 120
    offset_start: int = 0

    @property
    def frequency(self) -> int:
        return self.slot_interval or self.event_length


@dataclass
class AvailabilityResult:
    """Generated slots plus the availability ranges they were cut from."""
    slots: List[Slot] = field(default_factory=list)
    date_ranges: List[TimeRange] = field(default_factory=list)
