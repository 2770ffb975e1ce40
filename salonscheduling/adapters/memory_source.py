"""
In-memory appointment source.
"""

from typing import Dict, Iterable, List, Optional, Set

from pendulum import DateTime

from ..domain.models import Appointment, AppointmentAssistant, TimeBlock


def _in_window(
    start_at: DateTime,
    end_at: DateTime,
    start: Optional[DateTime],
    end: Optional[DateTime],
) -> bool:
    if start is not None and end_at <= start:
        return False
    if end is not None and start_at >= end:
        return False
    return True


class InMemoryAppointmentSource:
    """
    Appointment source backed by plain lists.

    Mirrors the queries the booking database answers: only active rows of the
    requested salon, optionally narrowed to a window, ordered by start.
    """

    def __init__(
        self,
        appointments: Iterable[Appointment] = (),
        assistants: Iterable[AppointmentAssistant] = (),
        time_blocks: Iterable[TimeBlock] = (),
    ):
        self.appointments: List[Appointment] = list(appointments)
        self.assistants: List[AppointmentAssistant] = list(assistants)
        self.time_blocks: List[TimeBlock] = list(time_blocks)

    def add_appointment(self, appointment: Appointment) -> None:
        self.appointments.append(appointment)

    def add_time_block(self, block: TimeBlock) -> None:
        self.time_blocks.append(block)

    def assign_assistant(self, appointment_id: str, assistant_user_id: str) -> None:
        self.assistants.append(
            AppointmentAssistant(appointment_id=appointment_id, assistant_user_id=assistant_user_id)
        )

    def _assistant_index(self) -> Dict[str, Set[str]]:
        """Map appointment id -> assistant user ids from both link styles."""
        index: Dict[str, Set[str]] = {}
        for appointment in self.appointments:
            index.setdefault(appointment.id, set()).update(appointment.assistant_ids)
        for link in self.assistants:
            index.setdefault(link.appointment_id, set()).add(link.assistant_user_id)
        return index

    def _select(
        self,
        candidates: Iterable[Appointment],
        salon_id: str,
        start: Optional[DateTime],
        end: Optional[DateTime],
        exclude_appointment_id: Optional[str],
    ) -> List[Appointment]:
        selected = [
            appointment
            for appointment in candidates
            if appointment.salon_id == salon_id
            and appointment.is_active
            and appointment.id != exclude_appointment_id
            and _in_window(appointment.start_at, appointment.end_at, start, end)
        ]
        return sorted(selected, key=lambda a: (a.start_at, a.id))

    async def find_professional_appointments(
        self,
        professional_id: str,
        salon_id: str,
        *,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        candidates = (a for a in self.appointments if a.professional_id == professional_id)
        return self._select(candidates, salon_id, start, end, exclude_appointment_id)

    async def find_assistant_appointments(
        self,
        assistant_id: str,
        salon_id: str,
        *,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        index = self._assistant_index()
        candidates = (a for a in self.appointments if assistant_id in index.get(a.id, ()))
        return self._select(candidates, salon_id, start, end, exclude_appointment_id)

    async def find_time_blocks(
        self,
        professional_id: str,
        salon_id: str,
        *,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeBlock]:
        blocks = [
            block
            for block in self.time_blocks
            if block.professional_id == professional_id
            and block.salon_id == salon_id
            and block.is_active
            and _in_window(block.start_at, block.end_at, start, end)
        ]
        return sorted(blocks, key=lambda b: (b.start_at, b.id))
