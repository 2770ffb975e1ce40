"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import AppointmentSourceError, InvalidTimeRangeError, SchedulingError
from .models import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentAssistant,
    AppointmentConflict,
    AppointmentStatus,
    BusinessHours,
    ConflictType,
    OccupiedBlock,
    ProfessionalAvailability,
    TimeBlock,
    TimeSlot,
)
from .rules import calculate_appointment_end_time, is_within_business_hours, overlaps
from .slot_calculator import SlotCalculator

__all__ = [
    "ACTIVE_STATUSES",
    "Appointment",
    "AppointmentAssistant",
    "AppointmentConflict",
    "AppointmentSourceError",
    "AppointmentStatus",
    "BusinessHours",
    "ConflictType",
    "InvalidTimeRangeError",
    "OccupiedBlock",
    "ProfessionalAvailability",
    "SchedulingError",
    "SlotCalculator",
    "TimeBlock",
    "TimeSlot",
    "calculate_appointment_end_time",
    "is_within_business_hours",
    "overlaps",
]
