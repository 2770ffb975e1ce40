"""
Builders for appointments and time blocks on Monday 2024-11-25.
"""

import pendulum

from salonscheduling.domain.models import Appointment, AppointmentStatus, TimeBlock

TZ = "America/Sao_Paulo"
SALON = "salon-1"


def at(value: str):
    return pendulum.parse(value, tz=TZ)


def make_appointment(
    appointment_id: str,
    start: str,
    end: str,
    professional_id: str = "pro-ana",
    salon_id: str = SALON,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    client_name: str = "Maria",
    **extra,
) -> Appointment:
    return Appointment(
        id=appointment_id,
        salon_id=salon_id,
        professional_id=professional_id,
        start_at=at(f"2024-11-25 {start}"),
        end_at=at(f"2024-11-25 {end}"),
        status=status,
        client_name=client_name,
        **extra,
    )


def make_block(block_id: str, start: str, end: str, professional_id: str = "pro-ana", **extra) -> TimeBlock:
    return TimeBlock(
        id=block_id,
        salon_id=SALON,
        professional_id=professional_id,
        start_at=at(f"2024-11-25 {start}"),
        end_at=at(f"2024-11-25 {end}"),
        **extra,
    )
