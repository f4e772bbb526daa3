"""
Configuration management using Pydantic models loaded from YAML.

The configuration is where schedule data gets validated before it reaches
the availability engine, which assumes well-formed input.
"""

from datetime import date, datetime, time
from pathlib import Path
from typing import List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .domain.exceptions import ScheduleConfigError
from .domain.models import AvailabilityEntry, Booking, BookingStatus, DateOverride, WorkingHoursRule

CalendarDate = date


def _parse_time_of_day(value: object) -> time:
    """Accept ``HH:MM`` strings (YAML has no time type) or time objects."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 24 * 60:
        # YAML 1.1 reads unquoted 17:00 as a base-60 integer, i.e. minutes
        hour, minute = divmod(value, 60)
        return time(hour, minute)
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), "%H:%M").time()
        except ValueError:
            pass
    raise ValueError(f"Time must use the HH:MM format, got {value!r}")


class DefaultsConfig(BaseModel):
    """Default slot settings."""
    event_length: int = 30
    slot_interval: Optional[int] = None
    minimum_booking_notice: int = 120

    @field_validator("event_length")
    @classmethod
    def validate_event_length(cls, value: int) -> int:
        """Ensure event length is positive."""
        if value <= 0:
            raise ValueError("event_length must be greater than zero")
        return value

    @field_validator("slot_interval", "minimum_booking_notice")
    @classmethod
    def validate_not_negative(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError(f"Value must not be negative, got {value}")
        return value


class WorkingHoursConfig(BaseModel):
    """Recurring weekly working hours (0=Sunday, 1=Monday .. 6=Saturday)."""
    days: List[int]
    start: time
    end: time

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_time(cls, value: object) -> time:
        return _parse_time_of_day(value)

    @field_validator("days")
    @classmethod
    def validate_days(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"days must be between 0 (Sunday) and 6 (Saturday), got {invalid_days}")
        # Preserve order while removing duplicates
        seen: set[int] = set()
        deduped: List[int] = []
        for day in value:
            if day not in seen:
                deduped.append(day)
                seen.add(day)
        return deduped

    @model_validator(mode="after")
    def validate_hours_order(self) -> "WorkingHoursConfig":
        """Ensure the working hours open before they close."""
        if self.end <= self.start:
            raise ValueError("end must be later than start")
        return self

    def to_rule(self) -> WorkingHoursRule:
        return WorkingHoursRule(days=frozenset(self.days), start_time=self.start, end_time=self.end)


class DateOverrideConfig(BaseModel):
    """Hours for one specific date. ``start == end`` marks a day off."""
    date: CalendarDate
    start: time
    end: time

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_time(cls, value: object) -> time:
        return _parse_time_of_day(value)

    @model_validator(mode="after")
    def validate_hours_order(self) -> "DateOverrideConfig":
        if self.end < self.start:
            raise ValueError("end must not be earlier than start")
        return self

    def to_override(self) -> DateOverride:
        return DateOverride(date=self.date, start_time=self.start, end_time=self.end)


class BookingConfig(BaseModel):
    """An existing booking that blocks time."""
    start: datetime
    end: datetime
    status: BookingStatus = BookingStatus.ACCEPTED

    def to_booking(self) -> Booking:
        return Booking(
            start=pendulum.instance(self.start),
            end=pendulum.instance(self.end),
            status=self.status
        )


class EngineConfig(BaseModel):
    """Schedule configuration."""
    timezone: str = "Europe/Belgrade"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    working_hours: List[WorkingHoursConfig] = Field(default_factory=list)
    date_overrides: List[DateOverrideConfig] = Field(default_factory=list)
    bookings: List[BookingConfig] = Field(default_factory=list)
    calendar_file: Optional[Path] = None
    calendar_id: str = "primary"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA identifier."""
        try:
            pendulum.timezone(value)
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("date_overrides")
    @classmethod
    def validate_unique_override_dates(cls, value: List[DateOverrideConfig]) -> List[DateOverrideConfig]:
        """Only one override per date is allowed."""
        seen: set[date] = set()
        for override in value:
            if override.date in seen:
                raise ValueError(f"Duplicate date override for {override.date.isoformat()}")
            seen.add(override.date)
        return value

    def availability(self) -> List[AvailabilityEntry]:
        """Schedule entries in the shape the engine expects."""
        entries: List[AvailabilityEntry] = [entry.to_rule() for entry in self.working_hours]
        entries.extend(entry.to_override() for entry in self.date_overrides)
        return entries

    def to_bookings(self) -> List[Booking]:
        return [entry.to_booking() for entry in self.bookings]

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "EngineConfig":
        """
        Load configuration from YAML file.

        A relative ``calendar_file`` is resolved against the config file's
        directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            EngineConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ScheduleConfigError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a schedule.yaml file. See schedule.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ScheduleConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ScheduleConfigError("Config file must contain a mapping at the root level.")

        try:
            config = cls(**data)
        except ValidationError as exc:
            raise ScheduleConfigError(f"Invalid configuration in {config_path}:\n{exc}") from exc

        if config.calendar_file is not None and not config.calendar_file.is_absolute():
            config.calendar_file = config_path.parent / config.calendar_file

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for schedule.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "schedule.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "schedule.yaml"

    return config_path
