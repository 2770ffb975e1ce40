"""
Application service for enumerating bookable slots.

The service fetches busy periods through an appointment source and delegates
the slot sweep to the domain-level ``SlotCalculator``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Union

import pendulum
from pendulum import Date, DateTime

from ..domain.models import OccupiedBlock, ProfessionalAvailability, TimeSlot, day_window
from ..domain.slot_calculator import SlotCalculator
from .conflict_checker import AppointmentSourceProtocol

logger = logging.getLogger(__name__)

DayLike = Union[str, date, datetime]


def to_day(value: DayLike, timezone: str = "UTC") -> Date:
    """
    Normalise ``YYYY-MM-DD`` strings, dates and datetimes to a pendulum Date.

    Datetimes are converted to ``timezone`` first so the calendar day matches
    the salon's local day.
    """
    if isinstance(value, str):
        return pendulum.from_format(value, "YYYY-MM-DD", tz=timezone).date()
    if isinstance(value, datetime):
        return pendulum.instance(value).in_timezone(timezone).date()
    return pendulum.date(value.year, value.month, value.day)


class AvailabilityService:
    """
    Orchestrates busy-time retrieval and free slot calculation.

    Busy periods are active appointments and, unless disabled, the
    professional's time blocks. A non-zero buffer widens every busy period.
    """

    def __init__(
        self,
        source: AppointmentSourceProtocol,
        slot_calculator: SlotCalculator,
        *,
        slot_duration_minutes: int = 30,
        buffer_minutes: int = 0,
        include_time_blocks: bool = True,
    ) -> None:
        self._source = source
        self._slot_calculator = slot_calculator
        self._slot_duration_minutes = slot_duration_minutes
        self._buffer_minutes = buffer_minutes
        self._include_time_blocks = include_time_blocks

    @property
    def timezone(self) -> str:
        return self._slot_calculator.business_hours.timezone

    def _duration(self, slot_duration: Optional[int]) -> int:
        if slot_duration is None:
            return self._slot_duration_minutes
        if slot_duration <= 0:
            raise ValueError(f"slot_duration must be greater than zero, got {slot_duration}")
        return slot_duration

    async def get_available_slots(
        self,
        professional_id: str,
        salon_id: str,
        day: DayLike,
        slot_duration: int = 30,
        work_start_hour: int = 9,
        work_end_hour: int = 18,
    ) -> List[TimeSlot]:
        """
        Free slots of ``slot_duration`` minutes for a professional on ``day``.

        Unlike the range and next-slot searches, this call does not read the
        configured slot duration or opening hours: it uses its own arguments
        (30 minutes, 09:00 to 18:00 by default) and ignores closed weekdays.

        Args:
            professional_id: Professional whose agenda is swept
            salon_id: Salon (tenant) context
            day: Calendar day, as ``YYYY-MM-DD`` or a date
            slot_duration: Length of each slot in minutes
            work_start_hour: First bookable hour of the day
            work_end_hour: Hour at which the day closes

        Returns:
            Slots in ascending order; none overlaps a busy period
        """
        target = to_day(day, self.timezone)
        window = day_window(target, work_start_hour, work_end_hour, self.timezone)

        busy = await self.fetch_busy_periods(professional_id, salon_id, window)
        slots = self._slot_calculator.free_slots(window, busy, slot_duration)

        logger.debug(
            "%d free slot(s) for %s on %s", len(slots), professional_id, target.isoformat()
        )
        return slots

    async def get_availability_range(
        self,
        professional_id: str,
        salon_id: str,
        start_day: DayLike,
        end_day: DayLike,
        slot_duration: Optional[int] = None,
    ) -> Dict[str, List[TimeSlot]]:
        """
        Free slots for every open day from ``start_day`` to ``end_day`` inclusive,
        keyed by ``YYYY-MM-DD``. Uses the configured opening hours.
        """
        first = to_day(start_day, self.timezone)
        last = to_day(end_day, self.timezone)
        if last < first:
            raise ValueError(f"end_day {last} is before start_day {first}")

        day_count = last.toordinal() - first.toordinal() + 1
        days = [first.add(days=offset) for offset in range(day_count)]
        span = TimeSlot(
            start=pendulum.datetime(first.year, first.month, first.day, tz=self.timezone),
            end=pendulum.datetime(last.year, last.month, last.day, tz=self.timezone).add(days=1),
        )

        busy = await self.fetch_busy_periods(professional_id, salon_id, span)
        return self._slot_calculator.slots_for_range(
            days, busy, self._duration(slot_duration)
        )

    async def find_next_available_slot(
        self,
        professional_id: str,
        salon_id: str,
        from_day: DayLike,
        search_days: int = 30,
        slot_duration: Optional[int] = None,
        not_before: Optional[DateTime] = None,
    ) -> TimeSlot | None:
        """
        Earliest free slot within ``search_days`` days, or None.

        Slots starting before ``not_before`` are skipped, so searching from
        today with the current time never returns a slot already in the past.
        """
        first = to_day(from_day, self.timezone)
        duration = self._duration(slot_duration)

        for offset in range(search_days):
            day = first.add(days=offset)
            window = self._slot_calculator.business_hours.window_for_day(day)
            if window is None:
                continue
            if not_before is not None and window.end <= not_before:
                continue

            busy = await self.fetch_busy_periods(professional_id, salon_id, window)
            slots = self._slot_calculator.free_slots(window, busy, duration)
            if not_before is not None:
                slots = [slot for slot in slots if slot.start >= not_before]
            if slots:
                return slots[0]

        logger.debug(
            "No free slot for %s within %d day(s) of %s",
            professional_id,
            search_days,
            first.isoformat(),
        )
        return None

    async def get_occupied_blocks(
        self,
        professional_id: str,
        salon_id: str,
        day: DayLike,
    ) -> List[OccupiedBlock]:
        """Appointments and time blocks of a professional on ``day``, by start."""
        target = to_day(day, self.timezone)
        start = pendulum.datetime(target.year, target.month, target.day, tz=self.timezone)
        end = start.add(days=1)

        appointments = await self._source.find_professional_appointments(
            professional_id, salon_id, start=start, end=end
        )
        blocks = await self._source.find_time_blocks(
            professional_id, salon_id, start=start, end=end
        )

        occupied = [
            OccupiedBlock(
                slot=a.time_slot, kind="APPOINTMENT", label=a.client_name, source_id=a.id
            )
            for a in appointments
            if a.is_active
        ]
        occupied.extend(
            OccupiedBlock(slot=b.time_slot, kind="TIME_BLOCK", label=b.label(), source_id=b.id)
            for b in blocks
            if b.is_active
        )
        occupied.sort(key=lambda block: block.slot.start)
        return occupied

    async def get_multi_professional_availability(
        self,
        professional_ids: Sequence[str],
        salon_id: str,
        day: DayLike,
        slot_duration: Optional[int] = None,
    ) -> List[ProfessionalAvailability]:
        """
        Free slots of several professionals on one day.

        Results are ordered by each professional's first free slot; those with
        nothing free come last, keeping the input order among equals. A closed
        day yields empty slot lists.
        """
        target = to_day(day, self.timezone)
        duration = self._duration(slot_duration)
        window = self._slot_calculator.business_hours.window_for_day(target)

        results: List[ProfessionalAvailability] = []
        for professional_id in dict.fromkeys(professional_ids):
            slots: List[TimeSlot] = []
            if window is not None:
                busy = await self.fetch_busy_periods(professional_id, salon_id, window)
                slots = self._slot_calculator.free_slots(window, busy, duration)
            results.append(ProfessionalAvailability(professional_id=professional_id, slots=slots))

        if window is not None:
            results.sort(key=lambda r: (r.next_available is None, r.next_available or window.start))
        return results

    async def fetch_busy_periods(
        self,
        professional_id: str,
        salon_id: str,
        window: TimeSlot,
    ) -> List[TimeSlot]:
        """Busy periods intersecting ``window``, padded by the buffer."""
        appointments = await self._source.find_professional_appointments(
            professional_id, salon_id, start=window.start, end=window.end
        )
        busy = [a.time_slot for a in appointments if a.is_active]

        if self._include_time_blocks:
            blocks = await self._source.find_time_blocks(
                professional_id, salon_id, start=window.start, end=window.end
            )
            busy.extend(b.time_slot for b in blocks if b.is_active)

        if self._buffer_minutes:
            busy = [period.padded(self._buffer_minutes) for period in busy]

        return sorted(busy, key=lambda period: period.start)
