"""
Shared fixtures: a small salon agenda on Monday 2024-11-25.
"""

import pytest

from helpers import SALON, at, make_appointment
from salonscheduling.adapters.memory_source import InMemoryAppointmentSource
from salonscheduling.domain.models import AppointmentStatus


@pytest.fixture
def source() -> InMemoryAppointmentSource:
    return InMemoryAppointmentSource(
        appointments=[
            make_appointment("apt-1", "10:00", "10:45", client_name="Maria"),
            make_appointment("apt-2", "14:00", "15:00", client_name="Joana"),
            make_appointment(
                "apt-3", "11:00", "12:00", status=AppointmentStatus.CANCELLED, client_name="Carla"
            ),
            make_appointment("apt-4", "16:00", "17:00", deleted_at=at("2024-11-20 08:00")),
            make_appointment("apt-5", "10:00", "11:00", professional_id="pro-bia", client_name="Lia"),
            make_appointment("apt-6", "13:00", "14:00", salon_id="salon-2"),
        ],
    )
