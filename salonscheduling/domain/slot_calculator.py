"""
Core business logic for calculating bookable time slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O). Callers fetch busy periods and hand them in.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

from pendulum import DateTime

from .models import BusinessHours, TimeSlot, day_window


class SlotCalculator:
    """
    Calculates free fixed-duration slots from busy periods and opening hours.

    Algorithm ("free list = day window minus busy intervals"):
    1. Build the day window from the opening hours
    2. Sort busy periods by start time
    3. Walk a cursor through the window, emitting slots that end at or before
       the next busy period
    4. Jump the cursor past each busy period
    5. Emit remaining slots until the window closes

    Slots are never clipped: a remainder shorter than the slot duration is
    dropped.
    """

    def __init__(self, business_hours: BusinessHours):
        self.business_hours = business_hours

    def free_slots(
        self,
        window: TimeSlot,
        busy: Iterable[TimeSlot],
        slot_minutes: int = 30,
    ) -> List[TimeSlot]:
        """
        Sweep ``window`` and return the fixed-size slots not blocked by ``busy``.

        Args:
            window: Opening window for the day
            busy: Busy periods, in any order; may overlap each other
            slot_minutes: Length of every emitted slot

        Returns:
            Non-overlapping slots in ascending order
        """
        if slot_minutes <= 0:
            raise ValueError(f"slot_minutes must be greater than zero, got {slot_minutes}")

        slots: List[TimeSlot] = []
        cursor = window.start

        for obstruction in sorted(busy, key=lambda s: s.start):
            if obstruction.end <= window.start:
                continue

            limit = min(obstruction.start, window.end)
            cursor = self._fill(slots, cursor, limit, slot_minutes)

            # Overlapping busy periods must never move the cursor backwards
            if obstruction.end > cursor:
                cursor = obstruction.end

            if cursor >= window.end:
                return slots

        self._fill(slots, cursor, window.end, slot_minutes)
        return slots

    @staticmethod
    def _fill(
        slots: List[TimeSlot],
        cursor: DateTime,
        limit: DateTime,
        slot_minutes: int,
    ) -> DateTime:
        """Append slots from ``cursor`` while they end at or before ``limit``."""
        slot_end = cursor.add(minutes=slot_minutes)
        while slot_end <= limit:
            slots.append(TimeSlot(start=cursor, end=slot_end))
            cursor = slot_end
            slot_end = cursor.add(minutes=slot_minutes)
        return cursor

    def slots_for_day(
        self,
        day: date,
        busy: Iterable[TimeSlot],
        slot_minutes: int = 30,
        start_hour: Optional[int] = None,
        end_hour: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Free slots for one day, using the configured hours unless overridden.

        Closed weekdays only apply when no explicit hours are given.
        """
        if start_hour is None and end_hour is None:
            window = self.business_hours.window_for_day(day)
            if window is None:
                return []
        else:
            window = day_window(
                day,
                self.business_hours.start_hour if start_hour is None else start_hour,
                self.business_hours.end_hour if end_hour is None else end_hour,
                self.business_hours.timezone,
            )

        return self.free_slots(window, busy, slot_minutes)

    def slots_for_range(
        self,
        days: Iterable[date],
        busy: Iterable[TimeSlot],
        slot_minutes: int = 30,
    ) -> Dict[str, List[TimeSlot]]:
        """
        Free slots per open day, keyed by ``YYYY-MM-DD``.

        Closed days are left out of the result.
        """
        busy_list = list(busy)
        result: Dict[str, List[TimeSlot]] = {}

        for day in days:
            window = self.business_hours.window_for_day(day)
            if window is None:
                continue
            relevant = [b for b in busy_list if b.overlaps(window)]
            result[day.isoformat()] = self.free_slots(window, relevant, slot_minutes)

        return result
