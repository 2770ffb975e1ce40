"""
Domain-specific exception hierarchy for the scheduling engine.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidTimeRangeError(SchedulingError, ValueError):
    """Raised when a time range does not start before it ends."""


class AppointmentSourceError(SchedulingError):
    """Raised when appointment data cannot be fetched or parsed."""
