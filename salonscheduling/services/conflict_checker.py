"""
Conflict detection for new and rescheduled appointments.

The checker asks an appointment source for candidate bookings and applies the
domain overlap rule itself, so every source (in-memory, JSON file, REST API)
yields the same answer. Sources only narrow the candidate list.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.models import (
    Appointment,
    AppointmentConflict,
    ConflictType,
    TimeBlock,
    TimeSlot,
)
from ..domain.rules import calculate_appointment_end_time, overlaps

logger = logging.getLogger(__name__)


class AppointmentSourceProtocol(Protocol):
    """Read-only access to the appointments the engine checks against."""

    async def find_professional_appointments(
        self,
        professional_id: str,
        salon_id: str,
        *,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        """Return active appointments of a professional, ordered by start."""

    async def find_assistant_appointments(
        self,
        assistant_id: str,
        salon_id: str,
        *,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        """Return active appointments an assistant is attached to."""

    async def find_time_blocks(
        self,
        professional_id: str,
        salon_id: str,
        *,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeBlock]:
        """Return active time blocks of a professional intersecting the window."""


def _format_range(appointment: Appointment) -> str:
    return f"{appointment.start_at.format('HH:mm')} to {appointment.end_at.format('HH:mm')}"


def _first_overlapping(
    candidates: Sequence[Appointment],
    proposed: TimeSlot,
    exclude_appointment_id: Optional[str],
) -> Appointment | None:
    """
    Pick the earliest active candidate overlapping ``proposed``.

    Candidates are sorted by start time (then id) so the reported conflict
    does not depend on the order the source returns rows in.
    """
    hits = [
        appointment
        for appointment in candidates
        if appointment.is_active
        and appointment.id != exclude_appointment_id
        and overlaps(proposed, appointment.time_slot)
    ]
    if not hits:
        return None
    return min(hits, key=lambda a: (a.start_at, a.id))


class ConflictChecker:
    """
    Detects double bookings for professionals and assistants.

    All checks are read-only. Errors raised by the source propagate to the
    caller unchanged; nothing is retried.
    """

    def __init__(self, source: AppointmentSourceProtocol, buffer_minutes: int = 0) -> None:
        self._source = source
        self._buffer_minutes = buffer_minutes

    async def check_professional_conflict(
        self,
        professional_id: str,
        salon_id: str,
        start_at: DateTime,
        end_at: DateTime,
        exclude_appointment_id: Optional[str] = None,
    ) -> AppointmentConflict:
        """
        Report the first active appointment of the professional that overlaps
        ``[start_at, end_at)``.

        Args:
            professional_id: Professional being booked
            salon_id: Salon (tenant) context
            start_at: Start of the proposed appointment
            end_at: End of the proposed appointment
            exclude_appointment_id: Appointment to ignore, used when rescheduling

        Raises:
            InvalidTimeRangeError: If ``start_at`` is not before ``end_at``
        """
        proposed = TimeSlot(start=start_at, end=end_at)

        candidates = await self._source.find_professional_appointments(
            professional_id,
            salon_id,
            start=start_at,
            end=end_at,
            exclude_appointment_id=exclude_appointment_id,
        )
        conflict = _first_overlapping(candidates, proposed, exclude_appointment_id)

        if conflict is None:
            logger.debug("No professional conflict for %s at %s", professional_id, proposed)
            return AppointmentConflict.none()

        logger.debug(
            "Professional %s conflicts with appointment %s", professional_id, conflict.id
        )
        return AppointmentConflict(
            has_conflict=True,
            conflict_type=ConflictType.PROFESSIONAL,
            conflicting_appointment_id=conflict.id,
            message=(
                f"Professional already has an appointment with {conflict.client_name} "
                f"from {_format_range(conflict)}"
            ),
        )

    async def check_assistant_conflict(
        self,
        assistant_id: str,
        salon_id: str,
        start_at: DateTime,
        end_at: DateTime,
        exclude_appointment_id: Optional[str] = None,
    ) -> AppointmentConflict:
        """Same as the professional check, through the assistant assignments."""
        proposed = TimeSlot(start=start_at, end=end_at)

        candidates = await self._source.find_assistant_appointments(
            assistant_id,
            salon_id,
            start=start_at,
            end=end_at,
            exclude_appointment_id=exclude_appointment_id,
        )
        conflict = _first_overlapping(candidates, proposed, exclude_appointment_id)

        if conflict is None:
            return AppointmentConflict.none()

        logger.debug("Assistant %s conflicts with appointment %s", assistant_id, conflict.id)
        return AppointmentConflict(
            has_conflict=True,
            conflict_type=ConflictType.ASSISTANT,
            conflicting_appointment_id=conflict.id,
            message=(
                f"Assistant already assigned to an appointment with {conflict.client_name} "
                f"from {_format_range(conflict)}"
            ),
        )

    async def check_time_block_conflict(
        self,
        professional_id: str,
        salon_id: str,
        start_at: DateTime,
        end_at: DateTime,
    ) -> AppointmentConflict:
        """Report a vacation, break or other block overlapping the interval."""
        proposed = TimeSlot(start=start_at, end=end_at)

        blocks = await self._source.find_time_blocks(
            professional_id, salon_id, start=start_at, end=end_at
        )
        hits = [b for b in blocks if b.is_active and overlaps(proposed, b.time_slot)]

        if not hits:
            return AppointmentConflict.none()

        block = min(hits, key=lambda b: (b.start_at, b.id))
        return AppointmentConflict(
            has_conflict=True,
            conflict_type=ConflictType.TIME_BLOCK,
            message=f"Professional is unavailable: {block.label()}",
        )

    async def check_buffer_conflict(
        self,
        professional_id: str,
        salon_id: str,
        start_at: DateTime,
        end_at: DateTime,
        exclude_appointment_id: Optional[str] = None,
        buffer_minutes: Optional[int] = None,
    ) -> AppointmentConflict:
        """
        Require a gap of ``buffer_minutes`` between neighbouring appointments.

        Only appointments ending inside the gap before ``start_at`` or
        starting inside the gap after ``end_at`` count; overlapping ones are
        the professional check's concern. A zero buffer disables the check.
        """
        buffer = self._buffer_minutes if buffer_minutes is None else buffer_minutes
        proposed = TimeSlot(start=start_at, end=end_at)
        if buffer <= 0:
            return AppointmentConflict.none()

        buffered = proposed.padded(buffer)
        candidates = await self._source.find_professional_appointments(
            professional_id,
            salon_id,
            start=buffered.start,
            end=buffered.end,
            exclude_appointment_id=exclude_appointment_id,
        )

        adjacent = [
            a for a in candidates
            if a.is_active
            and a.id != exclude_appointment_id
            and (
                buffered.start < a.end_at <= start_at
                or end_at <= a.start_at < buffered.end
            )
        ]
        if not adjacent:
            return AppointmentConflict.none()

        neighbour = min(adjacent, key=lambda a: (a.start_at, a.id))
        return AppointmentConflict(
            has_conflict=True,
            conflict_type=ConflictType.BUFFER_TIME,
            conflicting_appointment_id=neighbour.id,
            message=f"A gap of {buffer} minutes is required between appointments",
        )

    async def check_booking(
        self,
        professional_id: str,
        salon_id: str,
        start_at: DateTime,
        end_at: DateTime,
        assistant_ids: Sequence[str] = (),
        exclude_appointment_id: Optional[str] = None,
    ) -> AppointmentConflict:
        """
        Run every check a booking must pass and return the first conflict.

        Order: professional, each assistant, time blocks, buffer time.
        """
        conflict = await self.check_professional_conflict(
            professional_id, salon_id, start_at, end_at, exclude_appointment_id
        )
        if conflict.has_conflict:
            return conflict

        for assistant_id in assistant_ids:
            conflict = await self.check_assistant_conflict(
                assistant_id, salon_id, start_at, end_at, exclude_appointment_id
            )
            if conflict.has_conflict:
                return conflict

        conflict = await self.check_time_block_conflict(
            professional_id, salon_id, start_at, end_at
        )
        if conflict.has_conflict:
            return conflict

        return await self.check_buffer_conflict(
            professional_id, salon_id, start_at, end_at, exclude_appointment_id
        )

    async def is_slot_available(
        self,
        professional_id: str,
        salon_id: str,
        start_at: DateTime,
        services: Iterable[Any],
        assistant_ids: Sequence[str] = (),
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        """Whether a booking of ``services`` starting at ``start_at`` passes every check."""
        end_at = calculate_appointment_end_time(start_at, services)
        conflict = await self.check_booking(
            professional_id,
            salon_id,
            start_at,
            end_at,
            assistant_ids=assistant_ids,
            exclude_appointment_id=exclude_appointment_id,
        )
        return not conflict.has_conflict

    async def find_alternative_slots(
        self,
        professional_id: str,
        salon_id: str,
        window: TimeSlot,
        duration_minutes: int,
        *,
        slot_interval: int = 15,
        limit: int = 10,
        assistant_ids: Sequence[str] = (),
        exclude_appointment_id: Optional[str] = None,
    ) -> List[DateTime]:
        """
        Conflict-free start times inside ``window`` for a booking of
        ``duration_minutes``.

        Candidates start at ``window.start`` and advance by ``slot_interval``
        minutes; each must end by ``window.end`` and pass ``check_booking``.
        At most ``limit`` start times are returned, earliest first.
        """
        if duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be greater than zero, got {duration_minutes}")
        if slot_interval <= 0:
            raise ValueError(f"slot_interval must be greater than zero, got {slot_interval}")

        alternatives: List[DateTime] = []
        cursor = window.start
        while len(alternatives) < limit and cursor.add(minutes=duration_minutes) <= window.end:
            conflict = await self.check_booking(
                professional_id,
                salon_id,
                cursor,
                cursor.add(minutes=duration_minutes),
                assistant_ids=assistant_ids,
                exclude_appointment_id=exclude_appointment_id,
            )
            if not conflict.has_conflict:
                alternatives.append(cursor)
            cursor = cursor.add(minutes=slot_interval)

        logger.debug(
            "%d alternative start(s) for %s within %s", len(alternatives), professional_id, window
        )
        return alternatives
