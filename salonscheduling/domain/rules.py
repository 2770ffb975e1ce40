"""
Pure scheduling rules: interval overlap, business hours and service durations.
"""

from collections.abc import Mapping
from typing import Any, Iterable

from pendulum import DateTime

from .models import TimeSlot


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    """
    Check whether two half-open intervals intersect.

    Back-to-back intervals (``a.end == b.start``) do not overlap.
    """
    return a.overlaps(b)


def is_within_business_hours(
    start_at: DateTime,
    end_at: DateTime,
    business_start_hour: int = 9,
    business_end_hour: int = 18,
) -> bool:
    """
    Validate that an appointment falls inside opening hours.

    Hours are read in each datetime's own timezone. An appointment may end
    exactly on ``business_end_hour`` but not a minute later.
    """
    if start_at.hour < business_start_hour:
        return False

    if end_at.hour > business_end_hour or (
        end_at.hour == business_end_hour and end_at.minute > 0
    ):
        return False

    return True


def _service_duration(service: Any) -> int:
    if isinstance(service, Mapping):
        return int(service["duration"])
    return int(service.duration)


def calculate_appointment_end_time(start_at: DateTime, services: Iterable[Any]) -> DateTime:
    """
    Add the total duration of ``services`` (minutes) to ``start_at``.

    Each service is either a mapping with a ``duration`` key or an object
    with a ``duration`` attribute.
    """
    total = sum(_service_duration(service) for service in services)
    return start_at.add(minutes=total)
