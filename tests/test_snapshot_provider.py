"""
Tests for the snapshot file provider.
"""

import asyncio
import logging

import pendulum
import pytest

from availabilityengine.adapters.snapshot_provider import SnapshotProvider, parse_instant
from availabilityengine.domain.exceptions import InvalidConfiguration
from availabilityengine.domain.models import RecurrencePattern


TZ = "Europe/Berlin"

SNAPSHOT_YAML = """
time_off:
  - id: lunch
    title: Lunch
    start_time: "2024-11-11T12:00:00"
    end_time: "2024-11-11T13:00:00"
    is_recurring: true
    recurrence_pattern: weekly
  - id: dentist
    title: Dentist
    start_time: "2024-11-27T09:00:00"
    end_time: "2024-11-27T10:00:00"
  - id: old
    title: Disabled
    start_time: "2024-11-25T15:00:00"
    end_time: "2024-11-25T16:00:00"
    is_active: false
appointments:
  - id: a1
    start: 2024-11-25 10:00:00
    end: 2024-11-25 11:00:00
  - id: a2
    start: "2024-11-25T14:00:00"
    end: "2024-11-25T15:00:00"
    status: canceled
  - id: a3
    start: "2024-11-26T09:00:00"
    end: "2024-11-26T09:30:00"
    status: arrived
"""


def _day(year, month, day):
    start = pendulum.datetime(year, month, day, tz=TZ)
    return start, start.add(days=1)


@pytest.fixture
def provider(tmp_path):
    path = tmp_path / "snapshot.yaml"
    path.write_text(SNAPSHOT_YAML, encoding="utf-8")
    return SnapshotProvider(path, timezone=TZ)


class TestLoading:
    """Tests for reading snapshot files."""

    def test_records_are_parsed(self, provider):
        assert len(provider.time_off) == 3
        assert len(provider.appointments) == 3

        lunch = provider.time_off[0]
        assert lunch.repeats
        assert lunch.recurrence_pattern is RecurrencePattern.WEEKLY
        assert lunch.start_time == pendulum.datetime(2024, 11, 11, 12, tz=TZ)

    def test_unquoted_yaml_timestamps_use_business_timezone(self, provider):
        assert provider.appointments[0].start == pendulum.datetime(2024, 11, 25, 10, tz=TZ)

    def test_bad_records_are_skipped_with_warning(self, tmp_path, caplog):
        path = tmp_path / "snapshot.yaml"
        path.write_text(
            """
time_off:
  - title: No start
    end_time: "2024-11-25T13:00:00"
  - title: Bad pattern
    start_time: "2024-11-25T12:00:00"
    end_time: "2024-11-25T13:00:00"
    is_recurring: true
    recurrence_pattern: yearly
appointments:
  - start: "2024-11-25T11:00:00"
    end: "2024-11-25T10:00:00"
  - start: "2024-11-25T12:00:00"
    end: "2024-11-25T13:00:00"
""",
            encoding="utf-8",
        )

        with caplog.at_level(logging.WARNING):
            loaded = SnapshotProvider(path, timezone=TZ)

        assert loaded.time_off == []
        assert len(loaded.appointments) == 1
        assert loaded.appointments[0].id == "appointment-1"
        assert caplog.text.count("Skipping") == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SnapshotProvider(tmp_path / "missing.yaml", timezone=TZ)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "snapshot.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(InvalidConfiguration):
            SnapshotProvider(path, timezone=TZ)

    def test_no_file_serves_empty_snapshots(self):
        empty = SnapshotProvider(None, timezone=TZ)
        start, end = _day(2024, 11, 25)

        assert asyncio.run(empty.get_time_off(start, end)) == []
        assert asyncio.run(empty.get_appointments(start, end)) == []


class TestQueries:
    """Tests for the provider protocol methods."""

    def test_get_appointments_skips_canceled(self, provider):
        start, end = _day(2024, 11, 25)

        appointments = asyncio.run(provider.get_appointments(start, end))

        assert [appointment.id for appointment in appointments] == ["a1"]

    def test_get_time_off_filters_range_and_inactive(self, provider):
        start, end = _day(2024, 11, 25)

        periods = asyncio.run(provider.get_time_off(start, end))

        assert [period.id for period in periods] == ["lunch"]

    def test_recurring_period_not_served_before_it_starts(self, provider):
        start, end = _day(2024, 11, 4)

        assert asyncio.run(provider.get_time_off(start, end)) == []


class TestParseInstant:
    """Tests for timestamp parsing."""

    def test_string_with_offset_keeps_offset(self):
        instant = parse_instant("2024-11-25T10:00:00+00:00", TZ)

        assert instant == pendulum.datetime(2024, 11, 25, 11, tz=TZ)

    def test_date_becomes_midnight(self):
        from datetime import date

        assert parse_instant(date(2024, 11, 25), TZ) == pendulum.datetime(2024, 11, 25, tz=TZ)

    def test_unsupported_type(self):
        with pytest.raises(ValueError):
            parse_instant(12345, TZ)
