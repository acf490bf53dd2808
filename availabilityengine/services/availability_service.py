"""
Application services for finding and confirming bookable slots.

The service fetches time-off and appointment snapshots once per query through
provider adapters and delegates the availability decision to the domain-level
``AvailabilityResolver``. Providers are plain protocols so the CLI can plug in
the snapshot file adapter and tests can pass simple stubs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import pendulum
from pendulum import Date, DateTime

from ..domain.business_hours import MINUTES_PER_DAY
from ..domain.exceptions import SlotConflict
from ..domain.models import AppointmentInterval, BookingRequest, Slot, TimeOffPeriod, TimeRange
from ..domain.resolver import AvailabilityResolver


logger = logging.getLogger(__name__)


class TimeOffProviderProtocol(Protocol):
    """Protocol describing where active time-off periods come from."""

    async def get_time_off(
        self,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeOffPeriod]:
        """Return active time-off periods that may touch the range."""


class AppointmentProviderProtocol(Protocol):
    """Protocol describing where existing appointments come from."""

    async def get_appointments(
        self,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[AppointmentInterval]:
        """Return non-canceled appointments overlapping the range."""


class AvailabilityService:
    """
    Orchestrates snapshot retrieval and slot resolution.

    Results are read-time snapshots. The code that stores a booking must call
    :meth:`confirm_slot` (or an equivalent atomic check-and-insert) right before
    committing; a ``SlotConflict`` there means availability has to be resolved
    again.
    """

    def __init__(
        self,
        time_off_provider: TimeOffProviderProtocol,
        appointment_provider: AppointmentProviderProtocol,
        resolver: AvailabilityResolver,
    ) -> None:
        self._time_off_provider = time_off_provider
        self._appointment_provider = appointment_provider
        self._resolver = resolver

    @property
    def timezone(self) -> str:
        return self._resolver.calendar.timezone

    async def find_slots(
        self,
        *,
        date: Date,
        total_duration_minutes: int,
        now: Optional[DateTime] = None,
    ) -> List[Slot]:
        """
        Fetch the day's snapshots and compute the bookable slots.
        """
        now = now or pendulum.now(self.timezone)
        range_start, range_end = self.day_range(date)

        time_off, appointments = await self.fetch_snapshots(
            range_start=range_start,
            range_end=range_end,
        )

        return self._resolver.resolve(
            date=date,
            total_duration_minutes=total_duration_minutes,
            appointments=appointments,
            time_off_periods=time_off,
            now=now,
        )

    async def find_slots_for_request(
        self,
        request: BookingRequest,
        now: Optional[DateTime] = None,
    ) -> List[Slot]:
        """Resolve slots for a request built from selected services."""
        return await self.find_slots(
            date=request.date,
            total_duration_minutes=request.total_duration_minutes,
            now=now,
        )

    async def fetch_snapshots(
        self,
        *,
        range_start: DateTime,
        range_end: DateTime,
    ) -> Tuple[List[TimeOffPeriod], List[AppointmentInterval]]:
        """Fetch time-off and appointments for a range in one round."""
        time_off, appointments = await asyncio.gather(
            self._time_off_provider.get_time_off(range_start, range_end),
            self._appointment_provider.get_appointments(range_start, range_end),
        )

        logger.debug(
            "Fetched %d time-off periods and %d appointments for %s - %s",
            len(time_off),
            len(appointments),
            range_start,
            range_end,
        )
        return list(time_off), list(appointments)

    async def find_time_off(
        self,
        *,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[Tuple[TimeOffPeriod, TimeRange]]:
        """
        List every time-off occurrence overlapping a range with its period.
        """
        periods = await self._time_off_provider.get_time_off(range_start, range_end)
        expander = self._resolver.expander

        occurrences: List[Tuple[TimeOffPeriod, TimeRange]] = []
        for period in periods:
            for occurrence in expander.occurrences_in_range(period, range_start, range_end):
                occurrences.append((period, occurrence))

        return sorted(occurrences, key=lambda item: (item[1].start, item[0].id))

    async def confirm_slot(
        self,
        *,
        start: DateTime,
        total_duration_minutes: int,
        now: Optional[DateTime] = None,
    ) -> Slot:
        """
        Recheck a previously resolved slot against fresh snapshots.

        Raises:
            SlotConflict: If the slot is no longer bookable
        """
        now = now or pendulum.now(self.timezone)
        end = start.add(minutes=total_duration_minutes)

        time_off, appointments = await self.fetch_snapshots(range_start=start, range_end=end)

        reason = self._resolver.rejection_reason(
            start,
            total_duration_minutes,
            appointments,
            time_off,
            now,
        )
        if reason is not None:
            logger.info("Slot %s - %s rejected at commit: %s", start, end, reason)
            raise SlotConflict(start, end, reason)

        return Slot(start=start, duration_minutes=total_duration_minutes)

    def day_range(self, date: Date) -> Tuple[DateTime, DateTime]:
        """Get the instants bounding a date in the business timezone."""
        calendar = self._resolver.calendar
        return calendar.at(date, 0), calendar.at(date, MINUTES_PER_DAY)


def slots_to_payload(slots: Sequence[Slot]) -> Dict[str, List[str]]:
    """Render slots as ``{"slots": [<ISO-8601 instant>, ...]}``."""
    return {"slots": [slot.to_iso() for slot in slots]}
