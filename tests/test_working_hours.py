"""
Tests for working hours expansion, override resolution and range building.
"""

from datetime import date, time

import pendulum

from slotengine.domain.models import DateOverride, TimeRange, WorkingHoursRule
from slotengine.domain.timezones import weekday_in_zone
from slotengine.domain.working_hours import (
    build_date_ranges,
    expand_working_hours,
    resolve_date_override,
)

WEEKDAYS = frozenset({1, 2, 3, 4, 5})
EVERY_DAY = frozenset(range(7))


def _rule(start: str, end: str, days=WEEKDAYS) -> WorkingHoursRule:
    return WorkingHoursRule(
        days=days,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end)
    )


def _at(value: str, tz: str) -> pendulum.DateTime:
    return pendulum.parse(value, tz=tz)


class TestExpandWorkingHours:
    """Tests for expanding recurring rules across a window."""

    def test_expands_weekdays_only(self):
        """Friday to Monday yields Friday and Monday, not the weekend."""
        tz = "Europe/Berlin"
        ranges = expand_working_hours(
            [_rule("09:00", "17:00")],
            tz,
            _at("2024-11-22 00:00", tz),  # Friday
            _at("2024-11-26 00:00", tz),
        )

        assert sorted(ranges, key=lambda r: r.start) == [
            TimeRange(start=_at("2024-11-22 09:00", tz), end=_at("2024-11-22 17:00", tz)),
            TimeRange(start=_at("2024-11-25 09:00", tz), end=_at("2024-11-25 17:00", tz)),
        ]

    def test_clamps_to_window(self):
        tz = "UTC"
        ranges = expand_working_hours(
            [_rule("09:00", "17:00")],
            tz,
            _at("2024-11-25 10:15", tz),
            _at("2024-11-25 12:00", tz),
        )

        assert ranges == [TimeRange(start=_at("2024-11-25 10:15", tz), end=_at("2024-11-25 12:00", tz))]

    def test_window_after_working_hours_yields_nothing(self):
        tz = "UTC"
        ranges = expand_working_hours(
            [_rule("09:00", "17:00")],
            tz,
            _at("2024-11-25 18:00", tz),
            _at("2024-11-26 00:00", tz),
        )

        assert ranges == []

    def test_end_of_day_reaches_midnight(self):
        """An end of 23:59 is read as "through midnight"."""
        tz = "UTC"
        ranges = expand_working_hours(
            [_rule("20:00", "23:59", days=frozenset({1}))],
            tz,
            _at("2024-11-25 00:00", tz),
            _at("2024-11-27 00:00", tz),
        )

        assert ranges == [TimeRange(start=_at("2024-11-25 20:00", tz), end=_at("2024-11-26 00:00", tz))]

    def test_chained_rules_are_coalesced(self):
        """Two rules where one ends exactly where the next starts become one range."""
        tz = "UTC"
        ranges = expand_working_hours(
            [_rule("09:00", "12:00", days=frozenset({1})), _rule("12:00", "17:00", days=frozenset({1}))],
            tz,
            _at("2024-11-25 00:00", tz),
            _at("2024-11-26 00:00", tz),
        )

        assert ranges == [TimeRange(start=_at("2024-11-25 09:00", tz), end=_at("2024-11-25 17:00", tz))]

    def test_rules_sharing_an_end_keep_the_wider_range(self):
        tz = "UTC"
        ranges = expand_working_hours(
            [_rule("09:00", "17:00", days=frozenset({1})), _rule("12:00", "17:00", days=frozenset({1}))],
            tz,
            _at("2024-11-25 00:00", tz),
            _at("2024-11-26 00:00", tz),
        )

        assert ranges == [TimeRange(start=_at("2024-11-25 09:00", tz), end=_at("2024-11-25 17:00", tz))]

    def test_wall_clock_is_kept_on_spring_forward_day(self):
        """Clocks jump 02:00 -> 03:00 in Berlin on 2024-03-31."""
        tz = "Europe/Berlin"
        ranges = expand_working_hours(
            [_rule("09:00", "17:00", days=EVERY_DAY)],
            tz,
            _at("2024-03-30 00:00", tz),
            _at("2024-04-02 00:00", tz),
        )

        assert len(ranges) == 3
        for r in ranges:
            local_start = r.start.in_timezone(tz)
            local_end = r.end.in_timezone(tz)
            assert local_start.format("HH:mm") == "09:00"
            assert local_end.format("HH:mm") == "17:00"

        transition_day = [r for r in ranges if r.start.in_timezone(tz).day == 31][0]
        assert transition_day.start.in_timezone("UTC").format("HH:mm") == "07:00"

    def test_wall_clock_is_kept_on_fall_back_day(self):
        """Clocks go back 03:00 -> 02:00 in New York on 2024-11-03."""
        tz = "America/New_York"
        ranges = expand_working_hours(
            [_rule("09:00", "17:00", days=EVERY_DAY)],
            tz,
            _at("2024-11-02 00:00", tz),
            _at("2024-11-05 00:00", tz),
        )

        assert len(ranges) == 3
        for r in ranges:
            assert r.start.in_timezone(tz).format("HH:mm") == "09:00"
            assert r.end.in_timezone(tz).format("HH:mm") == "17:00"
            assert r.duration_minutes() == 480

    def test_wall_clock_is_kept_when_midnight_is_skipped(self):
        """Santiago jumps from 00:00 to 01:00 on 2024-09-08, so that day starts at 01:00."""
        tz = "America/Santiago"
        ranges = expand_working_hours(
            [_rule("09:00", "17:00", days=EVERY_DAY)],
            tz,
            pendulum.datetime(2024, 9, 7, tz=tz),
            pendulum.datetime(2024, 9, 10, tz=tz),
        )

        assert len(ranges) == 3
        for r in ranges:
            assert r.start.in_timezone(tz).format("HH:mm") == "09:00"
            assert r.end.in_timezone(tz).format("HH:mm") == "17:00"

    def test_midnight_transition_day_through_the_builder(self):
        tz = "America/Santiago"
        date_from = pendulum.datetime(2024, 9, 8, tz=tz)

        ranges = build_date_ranges([_rule("09:00", "17:00", days=EVERY_DAY)], tz, date_from, date_from.add(days=1))

        assert [(r.start.in_timezone(tz).format("HH:mm"), r.end.in_timezone(tz).format("HH:mm")) for r in ranges] == [
            ("09:00", "17:00")
        ]

    def test_weekdays_count_from_sunday(self):
        """Days 1-5 are Monday to Friday; 0 is Sunday."""
        tz = "Europe/Belgrade"
        week_start = _at("2024-11-24 00:00", tz)  # Sunday
        week_end = week_start.add(days=7)

        weekdays = expand_working_hours([_rule("09:00", "17:00")], tz, week_start, week_end)
        sundays = expand_working_hours([_rule("09:00", "17:00", days=frozenset({0}))], tz, week_start, week_end)

        assert sorted(r.start.in_timezone(tz).format("ddd") for r in weekdays) == ["Fri", "Mon", "Thu", "Tue", "Wed"]
        assert [r.start.in_timezone(tz).to_date_string() for r in sundays] == ["2024-11-24"]


class TestWeekdayInZone:
    """Tests for the weekday helper."""

    def test_sunday_is_zero_and_saturday_is_six(self):
        assert weekday_in_zone(pendulum.datetime(2024, 11, 24, 12, tz="UTC"), "UTC") == 0
        assert weekday_in_zone(pendulum.datetime(2024, 11, 25, 12, tz="UTC"), "UTC") == 1
        assert weekday_in_zone(pendulum.datetime(2024, 11, 30, 12, tz="UTC"), "UTC") == 6

    def test_weekday_is_read_in_the_target_timezone(self):
        """Sunday 23:30 UTC is already Monday in Tokyo."""
        instant = pendulum.datetime(2024, 11, 24, 23, 30, tz="UTC")

        assert weekday_in_zone(instant, "Asia/Tokyo") == 1


class TestResolveDateOverride:
    """Tests for turning a date override into a range."""

    def test_resolves_on_local_date(self):
        tz = "Asia/Tokyo"
        override = DateOverride(date=date(2024, 11, 25), start_time=time(12, 0), end_time=time(13, 0))

        assert resolve_date_override(override, tz) == TimeRange(
            start=_at("2024-11-25 12:00", tz),
            end=_at("2024-11-25 13:00", tz)
        )

    def test_end_of_day_resolves_to_next_midnight(self):
        tz = "Europe/Berlin"
        override = DateOverride(date=date(2024, 11, 25), start_time=time(18, 0), end_time=time(23, 59))

        assert resolve_date_override(override, tz).end == _at("2024-11-26 00:00", tz)

    def test_day_off_is_an_empty_range(self):
        override = DateOverride(date=date(2024, 11, 25), start_time=time(0, 0), end_time=time(0, 0))

        assert resolve_date_override(override, "UTC").is_empty


class TestBuildDateRanges:
    """Tests for the combined rule and override builder."""

    def test_override_replaces_rule_for_its_date_only(self):
        tz = "UTC"
        availability = [
            _rule("09:00", "17:00"),
            DateOverride(date=date(2024, 11, 25), start_time=time(12, 0), end_time=time(13, 0)),
        ]

        ranges = build_date_ranges(availability, tz, _at("2024-11-25 00:00", tz), _at("2024-11-27 00:00", tz))

        assert ranges == [
            TimeRange(start=_at("2024-11-25 12:00", tz), end=_at("2024-11-25 13:00", tz)),
            TimeRange(start=_at("2024-11-26 09:00", tz), end=_at("2024-11-26 17:00", tz)),
        ]

    def test_day_off_override_removes_the_date(self):
        tz = "UTC"
        availability = [
            _rule("09:00", "17:00"),
            DateOverride(date=date(2024, 11, 25), start_time=time(0, 0), end_time=time(0, 0)),
        ]

        ranges = build_date_ranges(availability, tz, _at("2024-11-25 00:00", tz), _at("2024-11-27 00:00", tz))

        assert ranges == [TimeRange(start=_at("2024-11-26 09:00", tz), end=_at("2024-11-26 17:00", tz))]

    def test_override_on_a_day_without_rules_adds_availability(self):
        tz = "UTC"
        availability = [
            _rule("09:00", "17:00"),
            DateOverride(date=date(2024, 11, 23), start_time=time(10, 0), end_time=time(14, 0)),  # Saturday
        ]

        ranges = build_date_ranges(availability, tz, _at("2024-11-23 00:00", tz), _at("2024-11-24 00:00", tz))

        assert ranges == [TimeRange(start=_at("2024-11-23 10:00", tz), end=_at("2024-11-23 14:00", tz))]

    def test_overrides_outside_the_window_are_ignored(self):
        tz = "UTC"
        availability = [
            DateOverride(date=date(2024, 11, 26), start_time=time(10, 0), end_time=time(14, 0)),
            DateOverride(date=date(2024, 12, 25), start_time=time(10, 0), end_time=time(14, 0)),
        ]

        ranges = build_date_ranges(availability, tz, _at("2024-11-25 00:00", tz), _at("2024-11-26 00:00", tz))

        assert ranges == []

    def test_no_entries(self):
        tz = "UTC"
        assert build_date_ranges([], tz, _at("2024-11-25 00:00", tz), _at("2024-11-26 00:00", tz)) == []
