"""
Configuration management using Pydantic models loaded from YAML.
"""

import re
from pathlib import Path
from typing import List, Optional, Sequence

import pendulum
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .domain.business_hours import BusinessHoursCalendar
from .domain.exceptions import InvalidConfiguration
from .domain.models import ServiceItem, WeeklyHours
from .domain.policy import BookingPolicy


TIME_OF_DAY_PATTERN = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$|^24:00$")


class WeeklyHoursConfig(BaseModel):
    """Opening hours for one weekday (0=Sunday, 6=Saturday)."""
    day_of_week: int
    is_open: bool = False
    time_slots: List[str] = Field(default_factory=list)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, v: int) -> int:
        """Validate weekday is between 0 and 6."""
        if not 0 <= v <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {v}")
        return v

    @field_validator("time_slots")
    @classmethod
    def validate_time_slots(cls, value: List[str]) -> List[str]:
        """Ensure entries are HH:mm strings forming complete pairs."""
        malformed = [slot for slot in value if not TIME_OF_DAY_PATTERN.match(slot)]
        if malformed:
            raise ValueError(f"time_slots must use HH:mm, got {malformed}")
        if len(value) % 2 != 0:
            raise ValueError(
                f"time_slots must hold start/end pairs, got {len(value)} entries"
            )
        return value

    def to_weekly_hours(self) -> WeeklyHours:
        return WeeklyHours(
            day_of_week=self.day_of_week,
            is_open=self.is_open,
            time_slots=tuple(self.time_slots),
        )


class PolicyConfig(BaseModel):
    """Advance-booking policy settings."""
    allow_same_day_booking: bool = True
    min_booking_advance_hours: int = 2
    max_booking_advance_days: int = 90
    slot_granularity_minutes: int = 30

    @field_validator("min_booking_advance_hours", "max_booking_advance_days")
    @classmethod
    def validate_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Value must not be negative, got {v}")
        return v

    @field_validator("slot_granularity_minutes")
    @classmethod
    def validate_granularity(cls, v: int) -> int:
        """Ensure the candidate grid actually advances."""
        if v <= 0:
            raise ValueError("slot_granularity_minutes must be greater than zero")
        return v

    def to_policy(self) -> BookingPolicy:
        return BookingPolicy(
            allow_same_day_booking=self.allow_same_day_booking,
            min_booking_advance_hours=self.min_booking_advance_hours,
            max_booking_advance_days=self.max_booking_advance_days,
            slot_granularity_minutes=self.slot_granularity_minutes,
        )


class ServiceConfig(BaseModel):
    """A bookable service with its buffers."""
    name: str
    duration_minutes: int
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure service duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    @field_validator("buffer_before_minutes", "buffer_after_minutes")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Buffer minutes must not be negative")
        return value

    def to_service_item(self) -> ServiceItem:
        return ServiceItem(
            name=self.name,
            duration_minutes=self.duration_minutes,
            buffer_before_minutes=self.buffer_before_minutes,
            buffer_after_minutes=self.buffer_after_minutes,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    business_name: str = ""
    timezone: str = "Europe/Berlin"
    weekly_hours: List[WeeklyHoursConfig] = Field(default_factory=list)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    services: List[ServiceConfig] = Field(default_factory=list)
    snapshot_file: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("weekly_hours")
    @classmethod
    def validate_weekly_hours(cls, value: List[WeeklyHoursConfig]) -> List[WeeklyHoursConfig]:
        """Ensure each weekday is configured at most once."""
        seen: set[int] = set()
        for entry in value:
            if entry.day_of_week in seen:
                raise ValueError(f"Duplicate weekly hours for day_of_week {entry.day_of_week}")
            seen.add(entry.day_of_week)
        return value

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceConfig]) -> List[ServiceConfig]:
        """Ensure service names are unique."""
        seen_names: set[str] = set()
        for service in value:
            name_key = service.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate service name detected: {service.name}")
            seen_names.add(name_key)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            InvalidConfiguration: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise InvalidConfiguration(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise InvalidConfiguration("Config file must contain a mapping at the root level.")

        try:
            return cls(**data)
        except ValidationError as exc:
            raise InvalidConfiguration(f"Invalid configuration in {config_path}:\n{exc}") from exc

    def build_calendar(self) -> BusinessHoursCalendar:
        """Build the business hours calendar for the configured timezone."""
        return BusinessHoursCalendar(
            [entry.to_weekly_hours() for entry in self.weekly_hours],
            timezone=self.timezone,
        )

    def find_service(self, name: str) -> ServiceConfig | None:
        """Find a service by name (case-insensitive)."""
        for service in self.services:
            if service.name.lower() == name.lower():
                return service
        return None

    def resolve_services(self, names: Sequence[str]) -> List[ServiceItem]:
        """
        Resolve service names to service items, keeping their order.

        Raises:
            ValueError: If a name is not configured
        """
        if not names:
            raise ValueError("No services provided.")

        items: List[ServiceItem] = []
        unknown: List[str] = []

        for name in names:
            service = self.find_service(name)
            if service is None:
                unknown.append(name)
                continue
            items.append(service.to_service_item())

        if unknown:
            missing = ", ".join(sorted(set(unknown)))
            raise ValueError(
                f"Unknown service(s): {missing}. "
                "Ensure they exist in the configuration."
            )

        return items

    def get_snapshot_path(self, config_path: Path) -> Path | None:
        """Resolve ``snapshot_file`` relative to the config file."""
        if not self.snapshot_file:
            return None
        path = Path(self.snapshot_file)
        if not path.is_absolute():
            path = config_path.parent / path
        return path


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
