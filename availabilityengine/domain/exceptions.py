"""
Domain-specific exception hierarchy for the availability engine.
"""


class AvailabilityError(Exception):
    """Base class for all engine-level errors."""


class InvalidConfiguration(AvailabilityError, ValueError):
    """Raised when business hours or policy settings are malformed."""


class InvalidDuration(AvailabilityError, ValueError):
    """Raised when a requested booking duration is not positive."""


class SlotConflict(AvailabilityError):
    """
    Raised at commit time when a previously resolved slot is no longer free.

    Callers should resolve availability again and let the user choose a new
    slot instead of retrying the same one.
    """

    def __init__(self, start, end, reason: str = "slot is no longer available"):
        self.start = start
        self.end = end
        self.reason = reason
        super().__init__(f"{start} - {end}: {reason}")
