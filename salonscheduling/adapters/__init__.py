"""
Adapters layer - Appointment sources (in-memory, JSON export, booking API).
"""

from .api_client import AppointmentApiClient
from .json_source import JsonAppointmentSource
from .memory_source import InMemoryAppointmentSource

__all__ = ["AppointmentApiClient", "InMemoryAppointmentSource", "JsonAppointmentSource"]
