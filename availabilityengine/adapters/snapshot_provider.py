"""
File-backed provider serving time-off and appointment snapshots.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
import yaml
from pendulum import DateTime

from ..domain.exceptions import InvalidConfiguration
from ..domain.models import AppointmentInterval, TimeOffPeriod
from ..domain.overlap import overlaps


logger = logging.getLogger(__name__)


def parse_instant(value: Any, timezone: str) -> DateTime:
    """
    Parse an instant from a snapshot record.

    Naive values are read in the business timezone. YAML may already have
    turned unquoted timestamps into ``datetime``/``date`` objects.
    """
    if isinstance(value, datetime):
        return pendulum.instance(value, tz=timezone)
    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day, tz=timezone)
    if isinstance(value, str):
        return pendulum.parse(value, tz=timezone)
    raise ValueError(f"Cannot read an instant from {value!r}")


class SnapshotProvider:
    """
    Serves time-off periods and appointments from a YAML or JSON file.

    The file holds two lists, ``time_off`` and ``appointments``, and is read
    once on construction. Records that cannot be parsed are skipped with a
    warning so one bad entry does not hide every other booking.
    """

    def __init__(self, snapshot_path: Optional[Path], timezone: str = "UTC"):
        """
        Initialize the provider.

        Args:
            snapshot_path: Path to the snapshot file; None serves empty snapshots
            timezone: IANA timezone used for naive timestamps

        Raises:
            FileNotFoundError: If the snapshot file doesn't exist
            InvalidConfiguration: If the file is not a valid snapshot
        """
        self.snapshot_path = snapshot_path
        self.timezone = timezone
        self.time_off: List[TimeOffPeriod] = []
        self.appointments: List[AppointmentInterval] = []
        self._load_snapshot()

    def _load_snapshot(self) -> None:
        """Load and parse the snapshot file."""
        if self.snapshot_path is None:
            logger.info("No snapshot file configured; serving empty snapshots")
            return

        if not self.snapshot_path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {self.snapshot_path}")

        try:
            with open(self.snapshot_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise InvalidConfiguration(f"Invalid snapshot file {self.snapshot_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise InvalidConfiguration("Snapshot file must contain a mapping at the root level.")

        for index, record in enumerate(data.get("time_off") or []):
            try:
                self.time_off.append(self._parse_time_off(record, index))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping time-off record %d in %s: %s", index, self.snapshot_path, exc)

        for index, record in enumerate(data.get("appointments") or []):
            try:
                self.appointments.append(self._parse_appointment(record, index))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping appointment record %d in %s: %s", index, self.snapshot_path, exc)

        logger.debug(
            "Loaded %d time-off periods and %d appointments from %s",
            len(self.time_off),
            len(self.appointments),
            self.snapshot_path,
        )

    def _parse_time_off(self, record: Dict[str, Any], index: int) -> TimeOffPeriod:
        recurrence_end = record.get("recurrence_end_date")
        return TimeOffPeriod(
            id=str(record.get("id") or f"time-off-{index}"),
            title=str(record.get("title", "")),
            start_time=parse_instant(record["start_time"], self.timezone),
            end_time=parse_instant(record["end_time"], self.timezone),
            is_recurring=bool(record.get("is_recurring", False)),
            recurrence_pattern=record.get("recurrence_pattern") or "none",
            recurrence_end_date=(
                parse_instant(recurrence_end, self.timezone) if recurrence_end is not None else None
            ),
            is_active=bool(record.get("is_active", True)),
            notes=record.get("notes"),
        )

    def _parse_appointment(self, record: Dict[str, Any], index: int) -> AppointmentInterval:
        start = parse_instant(record["start"], self.timezone)
        end = parse_instant(record["end"], self.timezone)
        if start >= end:
            raise ValueError(f"Appointment must start before it ends ({start} >= {end})")

        return AppointmentInterval(
            start=start,
            end=end,
            status=record.get("status") or "confirmed",
            id=str(record.get("id") or f"appointment-{index}"),
        )

    async def get_time_off(
        self,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeOffPeriod]:
        """
        Return active time-off periods that may touch the range.

        Recurring periods are returned whenever they started before the range
        ends; expanding them is the domain's job.
        """
        periods: List[TimeOffPeriod] = []

        for period in self.time_off:
            if not period.is_active:
                continue
            if period.repeats:
                if period.start_time < range_end:
                    periods.append(period)
            elif overlaps(period.start_time, period.end_time, range_start, range_end):
                periods.append(period)

        return periods

    async def get_appointments(
        self,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[AppointmentInterval]:
        """Return non-canceled appointments overlapping the range."""
        return [
            appointment
            for appointment in self.appointments
            if appointment.blocks_time
            and overlaps(appointment.start, appointment.end, range_start, range_end)
        ]
