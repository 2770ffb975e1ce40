"""
Service layer helpers that orchestrate appointment sources and domain logic.
"""

from .availability import AvailabilityService, to_day
from .conflict_checker import AppointmentSourceProtocol, ConflictChecker

__all__ = ["AppointmentSourceProtocol", "AvailabilityService", "ConflictChecker", "to_day"]
