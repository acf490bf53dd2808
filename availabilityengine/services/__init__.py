"""
Service layer helpers that orchestrate providers and domain logic.
"""

from .availability_service import (
    AppointmentProviderProtocol,
    AvailabilityService,
    TimeOffProviderProtocol,
    slots_to_payload,
)

__all__ = [
    "AppointmentProviderProtocol",
    "AvailabilityService",
    "TimeOffProviderProtocol",
    "slots_to_payload",
]
