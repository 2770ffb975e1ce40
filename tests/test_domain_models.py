"""
Tests for domain models.
"""

import pendulum
import pytest

from salonscheduling.domain.exceptions import InvalidTimeRangeError
from salonscheduling.domain.models import (
    Appointment,
    AppointmentConflict,
    AppointmentStatus,
    BusinessHours,
    TimeBlock,
    TimeSlot,
)

TZ = "America/Sao_Paulo"


def at(value: str):
    return pendulum.parse(value, tz=TZ)


class TestTimeSlot:
    """Tests for TimeSlot model."""

    def test_create_valid_time_slot(self):
        """Test creating a valid time slot."""
        slot = TimeSlot(start=at("2024-11-25 09:00"), end=at("2024-11-25 17:00"))

        assert slot.start == at("2024-11-25 09:00")
        assert slot.duration_minutes() == 480

    def test_invalid_time_slot_raises_error(self):
        """Inverted ranges are rejected."""
        with pytest.raises(InvalidTimeRangeError, match="Start time .* must be before end time"):
            TimeSlot(start=at("2024-11-25 17:00"), end=at("2024-11-25 09:00"))

    def test_empty_time_slot_raises_value_error(self):
        """Zero-length ranges are rejected and still catchable as ValueError."""
        with pytest.raises(ValueError):
            TimeSlot(start=at("2024-11-25 09:00"), end=at("2024-11-25 09:00"))

    def test_contains(self):
        outer = TimeSlot(start=at("2024-11-25 09:00"), end=at("2024-11-25 12:00"))
        inner = TimeSlot(start=at("2024-11-25 10:00"), end=at("2024-11-25 11:00"))

        assert outer.contains(inner)
        assert not inner.contains(outer)

    def test_padded(self):
        slot = TimeSlot(start=at("2024-11-25 10:00"), end=at("2024-11-25 11:00"))

        padded = slot.padded(15)

        assert padded.start == at("2024-11-25 09:45")
        assert padded.end == at("2024-11-25 11:15")
        assert slot.padded(0) is slot

    def test_str(self):
        slot = TimeSlot(start=at("2024-11-25 10:00"), end=at("2024-11-25 11:30"))

        assert str(slot) == "25.11.2024 10:00 - 11:30"


class TestAppointment:
    """Tests for Appointment activity rules."""

    def _appointment(self, **overrides):
        data = dict(
            id="a1",
            salon_id="s1",
            professional_id="p1",
            start_at=at("2024-11-25 10:00"),
            end_at=at("2024-11-25 11:00"),
        )
        data.update(overrides)
        return Appointment(**data)

    @pytest.mark.parametrize(
        "status",
        [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.IN_SERVICE],
    )
    def test_active_statuses(self, status):
        assert self._appointment(status=status).is_active

    @pytest.mark.parametrize("status", [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED])
    def test_inactive_statuses(self, status):
        assert not self._appointment(status=status).is_active

    def test_soft_deleted_is_inactive(self):
        appointment = self._appointment(deleted_at=at("2024-11-20 08:00"))

        assert not appointment.is_active

    def test_time_slot(self):
        appointment = self._appointment()

        assert appointment.time_slot == TimeSlot(
            start=at("2024-11-25 10:00"), end=at("2024-11-25 11:00")
        )


def test_time_block_label_prefers_reason():
    block = TimeBlock(
        id="b1",
        salon_id="s1",
        professional_id="p1",
        start_at=at("2024-11-25 12:00"),
        end_at=at("2024-11-25 13:00"),
        block_type="BREAK",
        reason="Lunch",
    )

    assert block.label() == "Lunch"
    assert TimeBlock(**{**block.__dict__, "reason": ""}).label() == "BREAK"


def test_no_conflict_value():
    conflict = AppointmentConflict.none()

    assert conflict.has_conflict is False
    assert conflict.conflict_type is None
    assert conflict.conflicting_appointment_id is None


class TestBusinessHours:
    """Tests for BusinessHours model."""

    def test_is_open_day(self):
        hours = BusinessHours(closed_weekdays=[6], timezone=TZ)

        assert hours.is_open_day(pendulum.date(2024, 11, 25))  # Monday
        assert hours.is_open_day(pendulum.date(2024, 11, 23))  # Saturday
        assert not hours.is_open_day(pendulum.date(2024, 11, 24))  # Sunday

    def test_window_for_day(self):
        hours = BusinessHours(start_hour=9, end_hour=18, timezone=TZ)

        window = hours.window_for_day(pendulum.date(2024, 11, 25))

        assert window is not None
        assert window.start == at("2024-11-25 09:00")
        assert window.end == at("2024-11-25 18:00")

    def test_window_for_closed_day(self):
        hours = BusinessHours(closed_weekdays=[6], timezone=TZ)

        assert hours.window_for_day(pendulum.date(2024, 11, 24)) is None
