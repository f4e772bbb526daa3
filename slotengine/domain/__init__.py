"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import busy_times_from_bookings, get_availability, is_slot_available
from .date_ranges import group_by_date, intersect, merge_by_date, subtract
from .models import (
    AvailabilityEntry,
    AvailabilityQuery,
    AvailabilityResult,
    Booking,
    BookingStatus,
    DateOverride,
    Slot,
    TimeRange,
    WorkingHoursRule,
)
from .slot_generator import SlotGenerator, get_slots
from .working_hours import build_date_ranges, expand_working_hours, resolve_date_override

__all__ = [
    "AvailabilityEntry",
    "AvailabilityQuery",
    "AvailabilityResult",
    "Booking",
    "BookingStatus",
    "DateOverride",
    "Slot",
    "SlotGenerator",
    "TimeRange",
    "WorkingHoursRule",
    "build_date_ranges",
    "busy_times_from_bookings",
    "expand_working_hours",
    "get_availability",
    "get_slots",
    "group_by_date",
    "intersect",
    "is_slot_available",
    "merge_by_date",
    "resolve_date_override",
    "subtract",
]
