"""
Core business logic for resolving bookable slots on a date.

This is the heart of the engine - pure domain logic without any external
dependencies (no API calls, no database, no I/O). Every call works on the
snapshots it is handed, so returned slots must still be rechecked when a
booking is committed.
"""

import logging
from typing import List, Optional, Sequence

from pendulum import Date, DateTime

from .business_hours import BusinessHoursCalendar
from .exceptions import InvalidDuration
from .models import AppointmentInterval, Slot, TimeOffPeriod, TimeRange, WeeklyHours
from .overlap import overlaps_any_appointment, overlaps_any_range
from .policy import BookingPolicy
from .slot_generator import SlotGenerator
from .time_off import TimeOffExpander


logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """
    Combines business hours, booking policy, appointments and time-off into
    the ordered list of bookable start times.

    Algorithm:
    1. Reject non-positive durations
    2. Get the open windows for the date (closed day -> no slots)
    3. Drop dates beyond the booking horizon
    4. Propose candidates on the granularity grid
    5. Keep a candidate only if it starts no earlier than the advance-notice
       limit, ends inside its own window, and overlaps neither a blocking
       appointment nor a time-off occurrence
    """

    def __init__(
        self,
        calendar: BusinessHoursCalendar,
        policy: BookingPolicy,
        expander: Optional[TimeOffExpander] = None,
        generator: Optional[SlotGenerator] = None,
    ):
        self.calendar = calendar
        self.policy = policy
        self.expander = expander or TimeOffExpander(timezone=calendar.timezone)
        self.generator = generator or SlotGenerator()

    def resolve(
        self,
        date: Date,
        total_duration_minutes: int,
        appointments: Sequence[AppointmentInterval],
        time_off_periods: Sequence[TimeOffPeriod],
        now: DateTime,
    ) -> List[Slot]:
        """
        Find all bookable start times on a date.

        Args:
            date: The calendar date in the business timezone
            total_duration_minutes: Stacked duration of services and buffers
            appointments: Existing appointments around the date
            time_off_periods: Time-off periods to honour
            now: The current instant, read in the business timezone

        Returns:
            Slots in ascending order; an empty list means fully booked

        Raises:
            InvalidDuration: If total_duration_minutes is not positive
        """
        _validate_duration(total_duration_minutes)
        now = now.in_timezone(self.calendar.timezone)

        windows = self.calendar.windows_for_date(date)
        if not windows:
            logger.debug("Business closed on %s", date)
            return []

        if not self.policy.is_date_bookable(date, now):
            logger.debug(
                "%s is past the booking horizon (%s)",
                date,
                self.policy.latest_bookable_date(now),
            )
            return []

        window_ranges = [
            TimeRange(start=self.calendar.at(date, start), end=self.calendar.at(date, end))
            for start, end in windows
        ]
        candidates = self.generator.candidates_for_windows(
            windows, self.policy.slot_granularity_minutes
        )
        earliest = self.policy.earliest_bookable_instant(now)

        # Filter and expand once per query, then check candidates in memory
        busy = [appointment for appointment in appointments if appointment.blocks_time]
        blocked = self.expander.expand_all(
            time_off_periods, window_ranges[0].start, window_ranges[-1].end
        )

        slots: List[Slot] = []
        for minute in candidates:
            window = _containing_window(minute, windows, window_ranges)
            start = self.calendar.at(date, minute)
            end = start.add(minutes=total_duration_minutes)

            if start < earliest:
                continue
            if end > window.end:
                continue
            if overlaps_any_appointment(start, end, busy):
                continue
            if overlaps_any_range(start, end, blocked):
                continue

            slots.append(Slot(start=start, duration_minutes=total_duration_minutes))

        logger.debug(
            "Resolved %d of %d candidates on %s (%d windows, %d appointments, %d time-off occurrences)",
            len(slots),
            len(candidates),
            date,
            len(windows),
            len(busy),
            len(blocked),
        )
        return slots

    def rejection_reason(
        self,
        start: DateTime,
        total_duration_minutes: int,
        appointments: Sequence[AppointmentInterval],
        time_off_periods: Sequence[TimeOffPeriod],
        now: DateTime,
    ) -> Optional[str]:
        """
        Explain why a single proposed booking is not available.

        Applies the same rules as :meth:`resolve` to one start instant.

        Returns:
            None if the booking is available, otherwise a short reason
        """
        _validate_duration(total_duration_minutes)
        now = now.in_timezone(self.calendar.timezone)

        end = start.add(minutes=total_duration_minutes)
        date = start.in_timezone(self.calendar.timezone).date()

        if start < self.policy.earliest_bookable_instant(now):
            return "starts before the earliest bookable time"
        if not self.policy.is_date_bookable(date, now):
            return "is past the booking horizon"

        window_ranges = self.calendar.window_ranges_for_date(date)
        if not any(window.contains(start) and end <= window.end for window in window_ranges):
            return "is outside business hours"

        if overlaps_any_appointment(start, end, appointments):
            return "overlaps an existing appointment"

        if self.expander.expand_all(time_off_periods, start, end):
            return "overlaps a time-off period"

        return None

    def is_slot_available(
        self,
        start: DateTime,
        total_duration_minutes: int,
        appointments: Sequence[AppointmentInterval],
        time_off_periods: Sequence[TimeOffPeriod],
        now: DateTime,
    ) -> bool:
        """Check a single proposed booking against all availability rules."""
        return self.rejection_reason(
            start, total_duration_minutes, appointments, time_off_periods, now
        ) is None


def resolve(
    date: Date,
    total_duration_minutes: int,
    appointments: Sequence[AppointmentInterval],
    time_off_periods: Sequence[TimeOffPeriod],
    weekly_hours: Sequence[WeeklyHours],
    policy: BookingPolicy,
    now: DateTime,
    timezone: str = "UTC",
) -> List[Slot]:
    """Resolve slots from raw inputs without holding on to a resolver."""
    calendar = BusinessHoursCalendar(weekly_hours, timezone=timezone)
    return AvailabilityResolver(calendar=calendar, policy=policy).resolve(
        date=date,
        total_duration_minutes=total_duration_minutes,
        appointments=appointments,
        time_off_periods=time_off_periods,
        now=now,
    )


def _validate_duration(total_duration_minutes: int) -> None:
    if total_duration_minutes <= 0:
        raise InvalidDuration(
            f"total_duration_minutes must be greater than zero, got {total_duration_minutes}"
        )


def _containing_window(
    minute: int,
    windows: Sequence[tuple],
    window_ranges: Sequence[TimeRange],
) -> TimeRange:
    for (start, end), window in zip(windows, window_ranges):
        if start <= minute < end:
            return window
    raise ValueError(f"Candidate minute {minute} lies outside every window")
