"""
Weekly business hours resolved to concrete open windows for a date.
"""

import logging
from typing import Dict, List, Sequence, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidConfiguration
from .models import WEEKDAY_NAMES, TimeRange, WeeklyHours, day_of_week


logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

# Used for weekdays that have no configuration at all: Monday-Friday
# 08:00-17:30, weekend closed.
DEFAULT_WEEKLY_HOURS: Tuple[WeeklyHours, ...] = tuple(
    WeeklyHours(
        day_of_week=day,
        is_open=day in (1, 2, 3, 4, 5),
        time_slots=("08:00", "17:30") if day in (1, 2, 3, 4, 5) else (),
    )
    for day in range(7)
)

Window = Tuple[int, int]


def parse_time_of_day(value: str) -> int:
    """
    Parse an "HH:mm" string into minutes after midnight.

    "24:00" is accepted as the end of the day.

    Raises:
        InvalidConfiguration: If the value is not a valid time of day
    """
    parts = str(value).strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise InvalidConfiguration(f"Invalid time of day '{value}', expected HH:mm")

    hour, minute = int(parts[0]), int(parts[1])
    if minute > 59 or hour > 24 or (hour == 24 and minute != 0):
        raise InvalidConfiguration(f"Time of day out of range: '{value}'")

    return hour * 60 + minute


def parse_time_slots(day: int, time_slots: Sequence[str]) -> List[Window]:
    """
    Turn a flat list of "HH:mm" strings into ascending (start, end) windows.

    Raises:
        InvalidConfiguration: On an unmatched entry, an empty or reversed
            pair, or pairs that overlap each other
    """
    if len(time_slots) % 2 != 0:
        raise InvalidConfiguration(
            f"Business hours for {WEEKDAY_NAMES[day]} have an odd number of "
            f"time slot entries ({len(time_slots)}); every start needs an end"
        )

    windows: List[Window] = []
    for i in range(0, len(time_slots), 2):
        start = parse_time_of_day(time_slots[i])
        end = parse_time_of_day(time_slots[i + 1])
        if start >= end:
            raise InvalidConfiguration(
                f"Business hours for {WEEKDAY_NAMES[day]}: window "
                f"{time_slots[i]}-{time_slots[i + 1]} must start before it ends"
            )
        windows.append((start, end))

    windows.sort()
    for previous, current in zip(windows, windows[1:]):
        if current[0] < previous[1]:
            raise InvalidConfiguration(
                f"Business hours for {WEEKDAY_NAMES[day]} contain overlapping windows"
            )

    return windows


class BusinessHoursCalendar:
    """
    Resolves a weekly schedule to the open windows of a specific date.

    All entries are validated on construction so that a broken schedule fails
    before any availability query runs.
    """

    def __init__(self, weekly_hours: Sequence[WeeklyHours], timezone: str = "UTC"):
        self.timezone = timezone
        self._entries: Dict[int, WeeklyHours] = {}
        self._windows: Dict[int, List[Window]] = {}

        for entry in weekly_hours:
            if entry.day_of_week not in range(7):
                raise InvalidConfiguration(
                    f"day_of_week must be between 0 and 6, got {entry.day_of_week}"
                )
            if entry.day_of_week in self._entries:
                raise InvalidConfiguration(
                    f"Duplicate business hours for {WEEKDAY_NAMES[entry.day_of_week]}"
                )
            self._entries[entry.day_of_week] = entry
            self._windows[entry.day_of_week] = parse_time_slots(
                entry.day_of_week, entry.time_slots
            )

        self._default_windows: Dict[int, List[Window]] = {
            entry.day_of_week: parse_time_slots(entry.day_of_week, entry.time_slots)
            for entry in DEFAULT_WEEKLY_HOURS
        }

    def uses_default(self, day: int) -> bool:
        """Check whether a weekday falls back to the default hours."""
        return day not in self._entries

    def hours_for_day(self, day: int) -> WeeklyHours:
        """Return the configured (or default) entry for a weekday."""
        if self.uses_default(day):
            return DEFAULT_WEEKLY_HOURS[day]
        return self._entries[day]

    def windows_for_date(self, date: Date) -> List[Window]:
        """
        Get the open windows for a date as minute-of-day pairs.

        Returns an empty list when the business is closed that day.
        """
        day = day_of_week(date)

        if self.uses_default(day):
            logger.warning(
                "No business hours configured for %s; using default hours "
                "(Mon-Fri 08:00-17:30)",
                WEEKDAY_NAMES[day],
            )
            return list(self._default_windows[day])

        entry = self._entries[day]
        if not entry.is_open or not entry.time_slots:
            return []

        return list(self._windows[day])

    def window_ranges_for_date(self, date: Date) -> List[TimeRange]:
        """Get the open windows for a date as instants in the business timezone."""
        return [
            TimeRange(start=self.at(date, start), end=self.at(date, end))
            for start, end in self.windows_for_date(date)
        ]

    def at(self, date: Date, minute_of_day: int) -> DateTime:
        """Build the wall-clock instant for a minute of the given date."""
        if minute_of_day >= MINUTES_PER_DAY:
            midnight = pendulum.datetime(date.year, date.month, date.day, tz=self.timezone)
            return midnight.add(days=1)

        return pendulum.datetime(
            date.year,
            date.month,
            date.day,
            minute_of_day // 60,
            minute_of_day % 60,
            tz=self.timezone,
        )
