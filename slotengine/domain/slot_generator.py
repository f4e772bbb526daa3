"""
Core business logic for turning availability ranges into bookable slots.

Pure domain logic: no I/O, the only outside input is the clock, which can be
injected for tests.
"""

import logging
import math
from bisect import bisect_left, insort
from typing import Dict, List, Optional, Sequence

import pendulum
from pendulum import DateTime

from .models import Slot, TimeRange
from .timezones import to_instant

logger = logging.getLogger(__name__)

# Slot starts snap to the first of these that evenly divides the frequency
INTERVALS_WITH_DEFINED_START_TIMES = (60, 30, 20, 15, 10, 5)


def _minimum_of_one(value: int) -> int:
    return 1 if value < 1 else value


def alignment_interval(frequency: int) -> int:
    """Pick the clock boundary (in minutes) slot starts should align to."""
    for interval in INTERVALS_WITH_DEFINED_START_TIMES:
        if frequency % interval == 0:
            return interval
    return 1


class SlotGenerator:
    """
    Generates fixed-cadence slots from non-overlapping availability ranges.

    Algorithm, per range in start order:
    1. Start at the later of range start and now + minimum booking notice
    2. Nudge misaligned starts onto a clean boundary (alignment, 15 or 5 min)
    3. Shift by the start offset
    4. Snap onto the cadence of slots already emitted from an earlier range
       so touching ranges do not produce overlapping slots
    5. Emit slots every ``frequency + offset_start`` minutes while they fit
    """

    def __init__(
        self,
        *,
        frequency: int,
        event_length: int,
        timezone: str,
        minimum_booking_notice: int = 0,
        offset_start: int = 0
    ):
        self.frequency = _minimum_of_one(frequency)
        self.event_length = _minimum_of_one(event_length)
        self.offset_start = _minimum_of_one(offset_start) if offset_start else 0
        self.timezone = timezone
        self.minimum_booking_notice = minimum_booking_notice
        self.interval = alignment_interval(self.frequency)

    @property
    def step_minutes(self) -> int:
        return self.frequency + self.offset_start

    def generate(
        self,
        date_ranges: Sequence[TimeRange],
        now: Optional[DateTime] = None
    ) -> List[Slot]:
        """
        Build slots for all ranges.

        Args:
            date_ranges: Available ranges, expected not to overlap
            now: Current instant; defaults to the real clock

        Returns:
            Slots in the order they were first emitted, without duplicates
        """
        now = pendulum.now("UTC") if now is None else to_instant(now)

        start_with_notice = now.add(minutes=self.minimum_booking_notice)
        ordered_ranges = sorted(date_ranges, key=lambda r: r.start)

        slots: Dict[int, Slot] = {}
        boundaries: List[int] = []

        for date_range in ordered_ranges:
            slot_start = self._first_slot_start(date_range, start_with_notice, boundaries)

            while not slot_start.add(minutes=self.event_length).subtract(seconds=1) > date_range.end:
                key = slot_start.int_timestamp

                if key not in slots:
                    insort(boundaries, key)
                    slots[key] = Slot(time=slot_start)

                slot_start = slot_start.add(minutes=self.step_minutes)

        logger.debug(
            "Generated %d slot(s) from %d range(s) (frequency=%d, length=%d)",
            len(slots),
            len(ordered_ranges),
            self.frequency,
            self.event_length
        )

        return list(slots.values())

    def _first_slot_start(
        self,
        date_range: TimeRange,
        start_with_notice: DateTime,
        boundaries: List[int]
    ) -> DateTime:
        """Work out where slot generation begins inside ``date_range``."""
        if date_range.start > start_with_notice:
            slot_start = date_range.start
        else:
            slot_start = start_with_notice

        slot_start = to_instant(slot_start)
        truncated = slot_start.set(second=0, microsecond=0)
        if truncated < slot_start:
            # Never start before the notice or the range because of dropped seconds
            truncated = truncated.add(minutes=1)
        slot_start = truncated.in_timezone(self.timezone)

        if slot_start.minute % self.interval != 0:
            slot_start = self._corrected_start(slot_start, date_range)

        slot_start = slot_start.add(minutes=self.offset_start)

        return self._snap_to_previous_boundary(slot_start, date_range, boundaries)

    def _corrected_start(self, slot_start: DateTime, date_range: TimeRange) -> DateTime:
        """
        Move a misaligned start onto the cleanest boundary the range can afford.

        The minutes left over after fitting whole intervals into the rest of
        the range are spent on rounding up: to the next alignment boundary if
        possible, else to the next quarter hour, else to the next five
        minutes. Otherwise the start is rounded up from the top of the hour.
        """
        minute = slot_start.minute
        to_next_interval = self.interval - (minute % self.interval)
        to_next_quarter = 15 - (minute % 15)
        to_next_five = 5 - (minute % 5)

        remaining_minutes = int((date_range.end - slot_start).total_seconds() / 60)
        extra_minutes = remaining_minutes % self.interval

        if extra_minutes >= to_next_interval:
            return slot_start.add(minutes=to_next_interval)
        if extra_minutes >= to_next_quarter:
            return slot_start.add(minutes=to_next_quarter)
        if extra_minutes >= to_next_five:
            return slot_start.add(minutes=to_next_five)

        return slot_start.start_of("hour").add(
            minutes=math.ceil(minute / self.interval) * self.interval
        )

    def _snap_to_previous_boundary(
        self,
        slot_start: DateTime,
        date_range: TimeRange,
        boundaries: List[int]
    ) -> DateTime:
        """
        Keep cadence with the latest emitted slot that is still running.

        If that slot (plus the step) reaches past ``slot_start``, restart
        either on it, when it lies inside this range, or right after it.
        """
        index = bisect_left(boundaries, slot_start.int_timestamp)
        if index == 0:
            return slot_start

        previous = pendulum.from_timestamp(boundaries[index - 1], tz=self.timezone)
        previous_end = previous.add(minutes=self.step_minutes)

        if previous_end > slot_start:
            if previous >= date_range.start:
                return previous
            return previous_end

        return slot_start


def get_slots(
    *,
    date_ranges: Sequence[TimeRange],
    frequency: int,
    event_length: int,
    timezone: str,
    minimum_booking_notice: int = 0,
    offset_start: int = 0,
    now: Optional[DateTime] = None
) -> List[Slot]:
    """Generate bookable slots for ``date_ranges``; see ``SlotGenerator``."""
    generator = SlotGenerator(
        frequency=frequency,
        event_length=event_length,
        timezone=timezone,
        minimum_booking_notice=minimum_booking_notice,
        offset_start=offset_start
    )
    return generator.generate(date_ranges, now=now)
