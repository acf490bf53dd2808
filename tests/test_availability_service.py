"""
Tests for the AvailabilityService orchestration layer.
"""

import asyncio
from typing import Dict, List

import pendulum
import pytest

from availabilityengine.domain.business_hours import BusinessHoursCalendar
from availabilityengine.domain.exceptions import InvalidDuration, SlotConflict
from availabilityengine.domain.models import (
    AppointmentInterval,
    BookingRequest,
    ServiceItem,
    Slot,
    TimeOffPeriod,
    WeeklyHours,
)
from availabilityengine.domain.policy import BookingPolicy
from availabilityengine.domain.resolver import AvailabilityResolver
from availabilityengine.services.availability_service import AvailabilityService, slots_to_payload


TZ = "Europe/Berlin"
MONDAY = pendulum.date(2024, 11, 25)
EARLY_NOW = pendulum.datetime(2024, 11, 24, 8, 0, tz=TZ)


class StubProvider:
    """Minimal stub matching both provider protocols."""

    def __init__(
        self,
        time_off: List[TimeOffPeriod] = None,
        appointments: List[AppointmentInterval] = None,
    ):
        self.time_off = list(time_off or [])
        self.appointments = list(appointments or [])
        self.calls: List[Dict[str, str]] = []

    async def get_time_off(self, range_start, range_end):
        self.calls.append(
            {
                "kind": "time_off",
                "start": range_start.to_datetime_string(),
                "end": range_end.to_datetime_string(),
            }
        )
        return self.time_off

    async def get_appointments(self, range_start, range_end):
        self.calls.append(
            {
                "kind": "appointments",
                "start": range_start.to_datetime_string(),
                "end": range_end.to_datetime_string(),
            }
        )
        return self.appointments


def _build_service(provider: StubProvider) -> AvailabilityService:
    weekly_hours = [
        WeeklyHours(day_of_week=day, is_open=day in range(1, 6), time_slots=("08:00", "17:30") if day in range(1, 6) else ())
        for day in range(7)
    ]
    resolver = AvailabilityResolver(
        calendar=BusinessHoursCalendar(weekly_hours, timezone=TZ),
        policy=BookingPolicy(),
    )
    return AvailabilityService(
        time_off_provider=provider,
        appointment_provider=provider,
        resolver=resolver,
    )


def test_find_slots_fetches_the_day_once():
    """Snapshots are fetched once for the whole day, not per candidate."""
    provider = StubProvider()
    service = _build_service(provider)

    slots = asyncio.run(
        service.find_slots(date=MONDAY, total_duration_minutes=60, now=EARLY_NOW)
    )

    assert len(slots) == 18  # 08:00 ... 16:30 on a 30 minute grid
    assert len(provider.calls) == 2
    assert {call["kind"] for call in provider.calls} == {"time_off", "appointments"}
    assert all(call["start"] == "2024-11-25 00:00:00" for call in provider.calls)
    assert all(call["end"] == "2024-11-26 00:00:00" for call in provider.calls)


def test_find_slots_uses_provider_data():
    appointment = AppointmentInterval(
        start=pendulum.datetime(2024, 11, 25, 10, tz=TZ),
        end=pendulum.datetime(2024, 11, 25, 11, tz=TZ),
    )
    service = _build_service(StubProvider(appointments=[appointment]))

    slots = asyncio.run(
        service.find_slots(date=MONDAY, total_duration_minutes=60, now=EARLY_NOW)
    )
    starts = [slot.start.format("HH:mm") for slot in slots]

    assert "10:30" not in starts
    assert "11:00" in starts


def test_find_slots_for_request_stacks_services():
    service = _build_service(StubProvider())
    request = BookingRequest.from_services(
        MONDAY,
        [
            ServiceItem(name="facial", duration_minutes=60, buffer_after_minutes=15),
            ServiceItem(name="brow-tint", duration_minutes=20, buffer_after_minutes=10),
        ],
    )

    slots = asyncio.run(service.find_slots_for_request(request, now=EARLY_NOW))

    assert all(slot.duration_minutes == 105 for slot in slots)
    assert slots[-1].start.format("HH:mm") == "15:30"  # ends 17:15


def test_invalid_duration_propagates():
    service = _build_service(StubProvider())

    with pytest.raises(InvalidDuration):
        asyncio.run(service.find_slots(date=MONDAY, total_duration_minutes=0, now=EARLY_NOW))


def test_confirm_slot_succeeds_on_free_slot():
    provider = StubProvider()
    service = _build_service(provider)
    start = pendulum.datetime(2024, 11, 25, 11, tz=TZ)

    slot = asyncio.run(
        service.confirm_slot(start=start, total_duration_minutes=60, now=EARLY_NOW)
    )

    assert slot == Slot(start=start, duration_minutes=60)
    assert all(call["start"] == "2024-11-25 11:00:00" for call in provider.calls)


def test_confirm_slot_detects_concurrent_booking():
    """A booking committed after resolution makes the slot conflict."""
    provider = StubProvider()
    service = _build_service(provider)
    start = pendulum.datetime(2024, 11, 25, 11, tz=TZ)

    slots = asyncio.run(
        service.find_slots(date=MONDAY, total_duration_minutes=60, now=EARLY_NOW)
    )
    assert Slot(start=start, duration_minutes=60) in slots

    provider.appointments.append(
        AppointmentInterval(start=start.add(minutes=30), end=start.add(minutes=90))
    )

    with pytest.raises(SlotConflict) as exc_info:
        asyncio.run(service.confirm_slot(start=start, total_duration_minutes=60, now=EARLY_NOW))

    assert exc_info.value.start == start
    assert exc_info.value.reason == "overlaps an existing appointment"


def test_find_time_off_expands_recurring_periods():
    lunch = TimeOffPeriod(
        id="lunch",
        title="Lunch",
        start_time=pendulum.datetime(2024, 11, 11, 12, tz=TZ),
        end_time=pendulum.datetime(2024, 11, 11, 13, tz=TZ),
        is_recurring=True,
        recurrence_pattern="weekly",
    )
    service = _build_service(StubProvider(time_off=[lunch]))

    occurrences = asyncio.run(
        service.find_time_off(
            range_start=pendulum.datetime(2024, 11, 25, tz=TZ),
            range_end=pendulum.datetime(2024, 12, 9, tz=TZ),
        )
    )

    assert [occurrence.start.day for _, occurrence in occurrences] == [25, 2]
    assert all(period is lunch for period, _ in occurrences)


def test_slots_to_payload():
    slots = [
        Slot(start=pendulum.datetime(2024, 11, 25, 11, 30, tz=TZ), duration_minutes=60),
        Slot(start=pendulum.datetime(2024, 11, 25, 12, 0, tz=TZ), duration_minutes=60),
    ]

    assert slots_to_payload(slots) == {
        "slots": ["2024-11-25T11:30:00+01:00", "2024-11-25T12:00:00+01:00"]
    }
    assert slots_to_payload([]) == {"slots": []}
