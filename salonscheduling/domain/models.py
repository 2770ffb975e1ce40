"""
Domain models for appointments, time slots and conflict results.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidTimeRangeError


@dataclass(frozen=True)
class TimeSlot:
    """
    Represents an immutable half-open interval ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidTimeRangeError(
                f"Start time {self.start} must be before end time {self.end}"
            )

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        """Check if this slot overlaps with another. Touching slots do not."""
        return not (self.end <= other.start or other.end <= self.start)

    def contains(self, other: "TimeSlot") -> bool:
        """Check if another slot lies entirely inside this one."""
        return self.start <= other.start and other.end <= self.end

    def padded(self, minutes: int) -> "TimeSlot":
        """Return the slot widened by ``minutes`` on both sides."""
        if not minutes:
            return self
        return TimeSlot(
            start=self.start.subtract(minutes=minutes),
            end=self.end.add(minutes=minutes),
        )

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_SERVICE = "IN_SERVICE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_SERVICE,
})


@dataclass
class Appointment:
    """
    A booked appointment as seen by the scheduling engine.

    Only the fields needed for conflict and availability checks are carried;
    the full record lives with the booking layer.
    """
    id: str
    salon_id: str
    professional_id: str
    start_at: DateTime
    end_at: DateTime
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    client_name: str = ""
    deleted_at: Optional[DateTime] = None
    assistant_ids: Tuple[str, ...] = ()

    @property
    def is_active(self) -> bool:
        """Not soft-deleted and still pending, confirmed or in service."""
        return self.deleted_at is None and self.status in ACTIVE_STATUSES

    @property
    def time_slot(self) -> TimeSlot:
        return TimeSlot(start=self.start_at, end=self.end_at)


@dataclass(frozen=True)
class AppointmentAssistant:
    """Links an assistant user to an appointment."""
    appointment_id: str
    assistant_user_id: str


@dataclass
class TimeBlock:
    """
    A period during which a professional cannot be booked
    (vacation, break, training, ...).
    """
    id: str
    salon_id: str
    professional_id: str
    start_at: DateTime
    end_at: DateTime
    block_type: str = "BREAK"
    reason: str = ""
    deleted_at: Optional[DateTime] = None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    @property
    def time_slot(self) -> TimeSlot:
        return TimeSlot(start=self.start_at, end=self.end_at)

    def label(self) -> str:
        return self.reason or self.block_type


class ConflictType(str, Enum):
    PROFESSIONAL = "PROFESSIONAL"
    ASSISTANT = "ASSISTANT"
    ROOM = "ROOM"  # reserved, no room checks yet
    TIME_BLOCK = "TIME_BLOCK"
    BUFFER_TIME = "BUFFER_TIME"


@dataclass(frozen=True)
class AppointmentConflict:
    """Result of a conflict check. Created per request, never persisted."""
    has_conflict: bool
    conflict_type: Optional[ConflictType] = None
    conflicting_appointment_id: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def none(cls) -> "AppointmentConflict":
        return cls(has_conflict=False)


@dataclass
class OccupiedBlock:
    """A busy period for calendar views."""
    slot: TimeSlot
    kind: str  # APPOINTMENT or TIME_BLOCK
    label: str = ""
    source_id: Optional[str] = None


@dataclass
class ProfessionalAvailability:
    """Free slots of one professional on one day."""
    professional_id: str
    slots: List[TimeSlot] = field(default_factory=list)

    @property
    def next_available(self) -> Optional[DateTime]:
        return self.slots[0].start if self.slots else None


@dataclass
class BusinessHours:
    """
    Configuration for salon opening hours.
    """
    start_hour: int = 9
    end_hour: int = 18
    closed_weekdays: List[int] = field(default_factory=list)  # 0=Monday, 6=Sunday
    timezone: str = "America/Sao_Paulo"

    def is_open_day(self, day: date) -> bool:
        """Check if the salon opens on the given day."""
        return day.weekday() not in self.closed_weekdays

    def window_for_day(self, day: date) -> TimeSlot | None:
        """
        Get the opening window for a specific day.
        Returns None if the salon is closed that day.
        """
        if not self.is_open_day(day):
            return None

        return day_window(day, self.start_hour, self.end_hour, self.timezone)


def day_window(day: date, start_hour: int, end_hour: int, timezone: str) -> TimeSlot:
    """Build ``[day@start_hour, day@end_hour)`` in the given timezone."""
    start = pendulum.datetime(day.year, day.month, day.day, start_hour, tz=timezone)
    end = pendulum.datetime(day.year, day.month, day.day, end_hour, tz=timezone)
    return TimeSlot(start=start, end=end)
