"""
Domain models for business hours, time-off, appointments and bookable slots.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple

from pendulum import Date, DateTime


WEEKDAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}


def day_of_week(value: Date) -> int:
    """Return the weekday of a date with 0=Sunday ... 6=Saturday."""
    return value.isoweekday() % 7


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start

    def contains(self, instant: DateTime) -> bool:
        """Check if an instant lies inside the range (end excluded)."""
        return self.start <= instant < self.end

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
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class WeeklyHours:
    """
    Opening hours for one weekday.

    ``time_slots`` holds "HH:mm" strings read as (start, end) pairs, e.g.
    ``("09:00", "12:00", "13:00", "17:00")`` for a day with a lunch break.
    """
    day_of_week: int  # 0=Sunday, 6=Saturday
    is_open: bool = False
    time_slots: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept lists from callers but keep the instance hashable
        object.__setattr__(self, "time_slots", tuple(self.time_slots))


class RecurrencePattern(str, Enum):
    """How a time-off period repeats."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class TimeOffPeriod:
    """
    A period during which the business takes no bookings.

    For recurring periods only the time of day of ``start_time`` and
    ``end_time`` matters per occurrence; the date of ``start_time`` anchors the
    first occurrence and supplies the weekday or day of month to match.
    """
    id: str
    title: str
    start_time: DateTime
    end_time: DateTime
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern = RecurrencePattern.NONE
    recurrence_end_date: Optional[DateTime] = None
    is_active: bool = True
    notes: Optional[str] = None

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Time-off '{self.title}' must start before it ends "
                f"({self.start_time} >= {self.end_time})"
            )
        object.__setattr__(
            self, "recurrence_pattern", RecurrencePattern(self.recurrence_pattern)
        )

    @property
    def repeats(self) -> bool:
        """True when the period expands into more than one occurrence."""
        return self.is_recurring and self.recurrence_pattern is not RecurrencePattern.NONE


class AppointmentStatus(str, Enum):
    """Lifecycle status of a booked appointment."""
    CONFIRMED = "confirmed"
    ARRIVED = "arrived"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELED = "canceled"


@dataclass(frozen=True)
class AppointmentInterval:
    """The occupied interval of an existing appointment."""
    start: DateTime
    end: DateTime
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "status", AppointmentStatus(self.status))

    @property
    def blocks_time(self) -> bool:
        """Canceled appointments free their interval again."""
        return self.status is not AppointmentStatus.CANCELED


@dataclass(frozen=True)
class ServiceItem:
    """A bookable service together with its buffer times."""
    name: str
    duration_minutes: int
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0

    @property
    def total_duration_minutes(self) -> int:
        """Duration including the buffers on both sides."""
        return self.duration_minutes + self.buffer_before_minutes + self.buffer_after_minutes


@dataclass(frozen=True)
class BookingRequest:
    """A request for slots on one date with a stacked total duration."""
    date: Date
    total_duration_minutes: int
    services: Tuple[ServiceItem, ...] = field(default=())

    @classmethod
    def from_services(cls, date: Date, services: Sequence[ServiceItem]) -> "BookingRequest":
        """Stack the durations and buffers of all selected services."""
        total = sum(service.total_duration_minutes for service in services)
        return cls(date=date, total_duration_minutes=total, services=tuple(services))


@dataclass(frozen=True)
class Slot:
    """
    A bookable start instant returned by the resolver.

    The end is implied by the requested duration.
    """
    start: DateTime
    duration_minutes: int

    @property
    def end(self) -> DateTime:
        return self.start.add(minutes=self.duration_minutes)

    def to_iso(self) -> str:
        return self.start.to_iso8601_string()

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm - HH:mm
        """
        weekday = WEEKDAY_NAMES[day_of_week(self.start.date())]
        date_str = self.start.format("YYYY-MM-DD")
        time_str = f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"

        return f"{weekday}, {date_str} | {time_str} ({self.duration_minutes} min)"
