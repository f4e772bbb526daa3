"""
Exception hierarchy for the layers around the availability engine.

The engine itself never raises for degenerate schedule data; these are used
by configuration loading and busy-time sources.
"""


class SlotEngineError(Exception):
    """Base class for all application-level errors."""


class ScheduleConfigError(SlotEngineError, ValueError):
    """Raised when a schedule configuration file cannot be loaded or validated."""


class BusySourceError(SlotEngineError):
    """Raised when busy times cannot be read from a calendar source."""
