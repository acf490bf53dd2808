"""
Advance-notice and booking-horizon rules.
"""

from dataclasses import dataclass

from pendulum import Date, DateTime


@dataclass(frozen=True)
class BookingPolicy:
    """
    Admin-owned booking policy.

    Attributes:
        allow_same_day_booking: Whether clients may book later on the current day
        min_booking_advance_hours: Lead time required when same-day booking is allowed
        max_booking_advance_days: How many days ahead bookings are accepted
        slot_granularity_minutes: Spacing of candidate start times
    """
    allow_same_day_booking: bool = True
    min_booking_advance_hours: int = 2
    max_booking_advance_days: int = 90
    slot_granularity_minutes: int = 30

    def earliest_bookable_instant(self, now: DateTime) -> DateTime:
        """Get the first instant a booking may start at."""
        if self.allow_same_day_booking:
            return now.add(hours=self.min_booking_advance_hours)
        return now.add(hours=24)

    def latest_bookable_date(self, now: DateTime) -> Date:
        """Get the furthest date a booking may fall on, counted from ``now``'s own date."""
        return now.date().add(days=self.max_booking_advance_days)

    def is_date_bookable(self, date: Date, now: DateTime) -> bool:
        """Check a date against the booking horizon."""
        return date <= self.latest_bookable_date(now)
