"""
Domain layer - Pure business logic without external dependencies.
"""

from .business_hours import BusinessHoursCalendar
from .exceptions import AvailabilityError, InvalidConfiguration, InvalidDuration, SlotConflict
from .models import (
    AppointmentInterval,
    AppointmentStatus,
    BookingRequest,
    RecurrencePattern,
    ServiceItem,
    Slot,
    TimeOffPeriod,
    TimeRange,
    WeeklyHours,
)
from .overlap import overlaps
from .policy import BookingPolicy
from .resolver import AvailabilityResolver, resolve
from .slot_generator import SlotGenerator
from .time_off import TimeOffExpander

__all__ = [
    "AppointmentInterval",
    "AppointmentStatus",
    "AvailabilityError",
    "AvailabilityResolver",
    "BookingPolicy",
    "BookingRequest",
    "BusinessHoursCalendar",
    "InvalidConfiguration",
    "InvalidDuration",
    "RecurrencePattern",
    "ServiceItem",
    "Slot",
    "SlotConflict",
    "SlotGenerator",
    "TimeOffExpander",
    "TimeOffPeriod",
    "TimeRange",
    "WeeklyHours",
    "overlaps",
    "resolve",
]
