"""
Busy-time source backed by a JSON export of calendar events.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import pendulum
from pendulum import DateTime

from ..domain.exceptions import BusySourceError
from ..domain.models import TimeRange

logger = logging.getLogger(__name__)


class JsonBusySource:
    """
    Reads busy time from a JSON file of calendar events.

    The file holds a list of events such as::

        {"calendarId": "primary", "start": "2024-11-25T10:00:00+01:00",
         "end": "2024-11-25T11:00:00+01:00", "status": "busy"}

    It stands in for an external calendar connector: only the events of one
    calendar are read, and only statuses that block time count as busy.
    """

    BUSY_STATUSES = ("busy", "tentative", "oof")

    def __init__(self, data_file: Path, calendar_id: str = "primary"):
        """
        Initialize the source.

        Args:
            data_file: Path to the JSON event list
            calendar_id: Calendar whose events are considered
        """
        self.data_file = Path(data_file)
        self.calendar_id = calendar_id
        self.name = f"json:{self.data_file.name}"

    def _load_events(self) -> List[Dict[str, Any]]:
        """Load the event list; a missing file means no busy time."""
        if not self.data_file.exists():
            logger.warning("Calendar file %s not found, assuming no busy time", self.data_file)
            return []

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                events = json.load(f)
        except (OSError, ValueError) as exc:
            raise BusySourceError(f"Could not read calendar file {self.data_file}: {exc}") from exc

        if not isinstance(events, list):
            raise BusySourceError(f"Calendar file {self.data_file} must contain a list of events.")

        return events

    def get_busy_times(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str = "UTC"
    ) -> List[TimeRange]:
        """
        Busy ranges of this calendar that overlap the requested window.

        Args:
            start_time: Start of the time window
            end_time: End of the time window
            timezone: IANA timezone used for event times without an offset

        Returns:
            List of busy TimeRange objects

        Raises:
            BusySourceError: If the file cannot be read
        """
        busy_times: List[TimeRange] = []

        for event in self._load_events():
            if not isinstance(event, dict) or event.get("calendarId") != self.calendar_id:
                continue

            status = str(event.get("status", "busy")).lower()
            if status not in self.BUSY_STATUSES:
                continue

            try:
                event_start = pendulum.parse(event["start"], tz=timezone)
                event_end = pendulum.parse(event["end"], tz=timezone)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unparseable calendar event %r: %s", event, exc)
                continue

            if event_start < end_time and event_end > start_time:
                busy_times.append(TimeRange(start=event_start, end=event_end))

        return busy_times
