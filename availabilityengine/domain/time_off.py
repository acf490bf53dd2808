"""
Expansion of one-time and recurring time-off periods into concrete intervals.

Recurring periods repeat their time-of-day window:

- daily: on every date from the origin onwards
- weekly: on dates sharing the origin's weekday
- monthly: on dates sharing the origin's day of month; months that lack that
  day (e.g. the 31st in April) have no occurrence

The time of day repeats in the business timezone, so a period stamped in
summer keeps its wall-clock window after a DST change. No occurrence is
anchored on a date after ``recurrence_end_date``.
"""

from datetime import timedelta
from typing import Iterable, Iterator, List, Optional

import pendulum
from pendulum import Date, DateTime

from .models import RecurrencePattern, TimeOffPeriod, TimeRange
from .overlap import overlaps


SECONDS_PER_DAY = 24 * 60 * 60


class TimeOffExpander:
    """
    Expands time-off periods into the occurrences that intersect a query range.

    Stateless; a single instance can be shared between threads.
    """

    def __init__(self, timezone: Optional[str] = None):
        """
        Args:
            timezone: IANA timezone whose wall clock recurring periods follow;
                None keeps each period's own offset
        """
        self.timezone = timezone

    def occurrences_in_range(
        self,
        period: TimeOffPeriod,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeRange]:
        """
        Get every occurrence of a period intersecting ``[range_start, range_end)``.

        Args:
            period: The time-off period to expand
            range_start: Start of the query range (inclusive)
            range_end: End of the query range (exclusive)

        Returns:
            Occurrences in ascending order; inactive periods yield none
        """
        if not period.is_active or range_start >= range_end:
            return []

        if not period.repeats:
            if overlaps(period.start_time, period.end_time, range_start, range_end):
                return [TimeRange(start=period.start_time, end=period.end_time)]
            return []

        origin = self._origin(period)
        end_date = self._recurrence_end_date(period, origin)
        occurrences: List[TimeRange] = []
        duration_seconds = int((period.end_time - period.start_time).total_seconds())

        for anchor in self._anchor_dates(period, origin, range_start, duration_seconds):
            if end_date is not None and anchor > end_date:
                break

            occurrence_start = self._occurrence_start(origin, anchor)
            if occurrence_start >= range_end:
                break

            occurrence_end = occurrence_start.add(seconds=duration_seconds)
            if overlaps(occurrence_start, occurrence_end, range_start, range_end):
                occurrences.append(TimeRange(start=occurrence_start, end=occurrence_end))

        return occurrences

    def is_blocked_at(self, period: TimeOffPeriod, instant: DateTime) -> bool:
        """
        Check whether a single instant falls inside any occurrence of a period.

        Bookings must be checked with :meth:`occurrences_in_range` over their
        whole interval instead; a multi-service booking can start before a
        blocked window and run into it.
        """
        return bool(
            self.occurrences_in_range(period, instant, instant + timedelta(microseconds=1))
        )

    def expand_all(
        self,
        periods: Iterable[TimeOffPeriod],
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeRange]:
        """Expand every active period over a range, sorted by start."""
        blocked: List[TimeRange] = []
        for period in periods:
            blocked.extend(self.occurrences_in_range(period, range_start, range_end))

        return sorted(blocked, key=lambda r: (r.start, r.end))

    def _origin(self, period: TimeOffPeriod) -> DateTime:
        if self.timezone is None:
            return period.start_time
        return period.start_time.in_timezone(self.timezone)

    @staticmethod
    def _recurrence_end_date(period: TimeOffPeriod, origin: DateTime) -> Optional[Date]:
        """The last anchor date, read on the origin's wall clock."""
        if period.recurrence_end_date is None:
            return None
        return pendulum.instance(period.recurrence_end_date).in_timezone(origin.tzinfo).date()

    @staticmethod
    def _occurrence_start(origin: DateTime, anchor: Date) -> DateTime:
        return pendulum.datetime(
            anchor.year,
            anchor.month,
            anchor.day,
            origin.hour,
            origin.minute,
            origin.second,
            tz=origin.tzinfo,
        )

    def _anchor_dates(
        self,
        period: TimeOffPeriod,
        origin: DateTime,
        range_start: DateTime,
        duration_seconds: int,
    ) -> Iterator[Date]:
        """
        Yield matching anchor dates in ascending order, without end.

        Walking begins shortly before the query range rather than at the
        origin; an occurrence anchored up to ``duration`` days earlier can
        still reach into the range.
        """
        origin_date = origin.date()
        lookback_days = duration_seconds // SECONDS_PER_DAY + 1
        local_start = range_start.astimezone(origin.tzinfo).date()
        first = max(origin_date, local_start.subtract(days=lookback_days))

        pattern = period.recurrence_pattern

        if pattern is RecurrencePattern.DAILY:
            current = first
            while True:
                yield current
                current = current.add(days=1)

        elif pattern is RecurrencePattern.WEEKLY:
            current = first.add(days=(origin_date.weekday() - first.weekday()) % 7)
            while True:
                yield current
                current = current.add(days=7)

        elif pattern is RecurrencePattern.MONTHLY:
            year, month = first.year, first.month
            while True:
                if origin_date.day <= pendulum.date(year, month, 1).days_in_month:
                    candidate = pendulum.date(year, month, origin_date.day)
                    if candidate >= origin_date:
                        yield candidate
                year, month = (year + 1, 1) if month == 12 else (year, month + 1)
