"""
Half-open interval overlap checks shared by appointment and time-off filtering.
"""

from typing import Iterable

from pendulum import DateTime

from .models import AppointmentInterval, TimeRange


def overlaps(a_start: DateTime, a_end: DateTime, b_start: DateTime, b_end: DateTime) -> bool:
    """
    Check whether ``[a_start, a_end)`` and ``[b_start, b_end)`` overlap.

    An interval ending exactly when another begins does not overlap it.
    """
    return a_start < b_end and a_end > b_start


def overlaps_any_appointment(
    start: DateTime,
    end: DateTime,
    appointments: Iterable[AppointmentInterval],
) -> bool:
    """Check an interval against every appointment that still blocks time."""
    return any(
        overlaps(start, end, appointment.start, appointment.end)
        for appointment in appointments
        if appointment.blocks_time
    )


def overlaps_any_range(start: DateTime, end: DateTime, ranges: Iterable[TimeRange]) -> bool:
    """Check an interval against a collection of blocked ranges."""
    return any(overlaps(start, end, blocked.start, blocked.end) for blocked in ranges)
