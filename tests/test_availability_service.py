"""
Tests for the AvailabilityService orchestration layer.
"""

import asyncio
from datetime import date
from typing import List

import pendulum
import pytest

from helpers import SALON, TZ, at, make_appointment, make_block
from salonscheduling.adapters.memory_source import InMemoryAppointmentSource
from salonscheduling.domain.models import BusinessHours, TimeSlot
from salonscheduling.domain.slot_calculator import SlotCalculator
from salonscheduling.services.availability import AvailabilityService, to_day


def _build_service(source, **kwargs) -> AvailabilityService:
    calculator = SlotCalculator(
        business_hours=BusinessHours(start_hour=9, end_hour=18, closed_weekdays=[6], timezone=TZ)
    )
    return AvailabilityService(source, calculator, **kwargs)


def _slots(service, day="2024-11-25", professional_id="pro-ana", **kwargs) -> List[TimeSlot]:
    return asyncio.run(service.get_available_slots(professional_id, SALON, day, **kwargs))


def test_empty_day_has_eighteen_slots():
    slots = _slots(_build_service(InMemoryAppointmentSource()))

    assert len(slots) == 18
    assert slots[0] == TimeSlot(start=at("2024-11-25 09:00"), end=at("2024-11-25 09:30"))
    assert slots[-1] == TimeSlot(start=at("2024-11-25 17:30"), end=at("2024-11-25 18:00"))


def test_appointment_removes_its_slots():
    source = InMemoryAppointmentSource([make_appointment("apt-1", "10:00", "11:00")])
    busy = TimeSlot(start=at("2024-11-25 10:00"), end=at("2024-11-25 11:00"))

    slots = _slots(_build_service(source))

    assert len(slots) == 16
    assert not any(slot.overlaps(busy) for slot in slots)
    assert [s for s in slots if s.end <= busy.start][-1].end == busy.start
    assert [s for s in slots if s.start >= busy.end][0].start == busy.end


def test_only_active_appointments_of_the_professional_count(source):
    # Fixture: apt-1 10:00-10:45 and apt-2 14:00-15:00 are active for pro-ana
    slots = _slots(_build_service(source))

    starts = [slot.start.format("HH:mm") for slot in slots]
    assert "10:00" not in starts
    assert "10:45" in starts
    assert "11:15" in starts  # cancelled apt-3 is free time
    assert "14:00" not in starts and "14:30" not in starts
    assert "16:00" in starts  # deleted apt-4 is free time


def test_explicit_hours_and_duration():
    slots = _slots(
        _build_service(InMemoryAppointmentSource()),
        slot_duration=60,
        work_start_hour=10,
        work_end_hour=13,
    )

    assert [s.start.hour for s in slots] == [10, 11, 12]


def test_time_blocks_obstruct_slots():
    source = InMemoryAppointmentSource(time_blocks=[make_block("blk-1", "12:00", "13:00")])

    slots = _slots(_build_service(source))
    without_blocks = _slots(_build_service(source, include_time_blocks=False))

    assert len(slots) == 16
    assert len(without_blocks) == 18


def test_buffer_pads_busy_periods():
    source = InMemoryAppointmentSource([make_appointment("apt-1", "10:00", "11:00")])

    slots = _slots(_build_service(source, buffer_minutes=15), slot_duration=30)

    starts = [slot.start.format("HH:mm") for slot in slots]
    # 09:30-10:00 runs into the buffer that starts at 09:45
    assert starts[:3] == ["09:00", "11:15", "11:45"]


def test_accepts_date_objects():
    service = _build_service(InMemoryAppointmentSource())

    assert _slots(service, day=date(2024, 11, 25)) == _slots(service, day="2024-11-25")


def test_availability_range_skips_closed_days(source):
    result = asyncio.run(
        _build_service(source).get_availability_range(
            "pro-ana", SALON, "2024-11-23", "2024-11-25", slot_duration=60
        )
    )

    assert list(result) == ["2024-11-23", "2024-11-25"]
    assert len(result["2024-11-23"]) == 9
    assert all(slot.start.day == 25 for slot in result["2024-11-25"])


def test_availability_range_rejects_inverted_days():
    with pytest.raises(ValueError):
        asyncio.run(
            _build_service(InMemoryAppointmentSource()).get_availability_range(
                "pro-ana", SALON, "2024-11-25", "2024-11-20"
            )
        )


def test_find_next_available_slot_skips_full_and_closed_days():
    source = InMemoryAppointmentSource(
        [make_appointment("apt-1", "09:00", "18:00")]
    )
    service = _build_service(source)

    # Saturday 2024-11-23 is open and empty
    assert asyncio.run(
        service.find_next_available_slot("pro-ana", SALON, "2024-11-23")
    ).start == at("2024-11-23 09:00")

    # Monday is fully booked, Tuesday opens at 09:00
    slot = asyncio.run(service.find_next_available_slot("pro-ana", SALON, "2024-11-25"))
    assert slot == TimeSlot(start=at("2024-11-26 09:00"), end=at("2024-11-26 09:30"))

    # Sunday is closed
    slot = asyncio.run(service.find_next_available_slot("pro-ana", SALON, "2024-11-24"))
    assert slot.start == at("2024-11-26 09:00")


def test_find_next_available_slot_gives_up():
    source = InMemoryAppointmentSource([make_appointment("apt-1", "09:00", "18:00")])

    slot = asyncio.run(
        _build_service(source).find_next_available_slot("pro-ana", SALON, "2024-11-25", search_days=1)
    )

    assert slot is None


def test_occupied_blocks_are_sorted(source):
    source.add_time_block(make_block("blk-1", "12:00", "13:00", reason="Lunch"))

    blocks = asyncio.run(_build_service(source).get_occupied_blocks("pro-ana", SALON, "2024-11-25"))

    assert [(b.kind, b.label) for b in blocks] == [
        ("APPOINTMENT", "Maria"),
        ("TIME_BLOCK", "Lunch"),
        ("APPOINTMENT", "Joana"),
    ]


def test_to_day_normalises_inputs():
    assert to_day("2024-11-25", TZ) == pendulum.date(2024, 11, 25)
    assert to_day(date(2024, 11, 25)) == pendulum.date(2024, 11, 25)
    # 01:00 UTC is still the previous evening in Sao Paulo
    assert to_day(pendulum.datetime(2024, 11, 26, 1, tz="UTC"), TZ) == pendulum.date(2024, 11, 25)


def test_find_next_available_slot_skips_past_slots():
    source = InMemoryAppointmentSource([make_appointment("apt-1", "10:00", "10:45")])
    service = _build_service(source)

    later_today = asyncio.run(
        service.find_next_available_slot(
            "pro-ana", SALON, "2024-11-25", not_before=at("2024-11-25 10:50")
        )
    )
    after_closing = asyncio.run(
        service.find_next_available_slot(
            "pro-ana", SALON, "2024-11-25", not_before=at("2024-11-25 18:30")
        )
    )

    # 10:45 is free but already started
    assert later_today.start == at("2024-11-25 11:15")
    assert after_closing.start == at("2024-11-26 09:00")


@pytest.mark.parametrize("call", ["range", "next"])
def test_zero_slot_duration_is_rejected(call):
    service = _build_service(InMemoryAppointmentSource())

    with pytest.raises(ValueError):
        if call == "range":
            asyncio.run(
                service.get_availability_range(
                    "pro-ana", SALON, "2024-11-25", "2024-11-25", slot_duration=0
                )
            )
        else:
            asyncio.run(service.find_next_available_slot("pro-ana", SALON, "2024-11-25", slot_duration=0))


def test_multi_professional_availability_is_sorted_by_next_free_slot(source):
    source.add_appointment(make_appointment("apt-7", "09:00", "18:00", professional_id="pro-cid"))
    service = _build_service(source)

    results = asyncio.run(
        service.get_multi_professional_availability(
            ["pro-cid", "pro-bia", "pro-ana", "pro-ana"], SALON, "2024-11-25"
        )
    )

    # bia and ana are both free at 09:00 and keep their input order; cid is fully booked
    assert [r.professional_id for r in results] == ["pro-bia", "pro-ana", "pro-cid"]
    assert results[0].next_available == at("2024-11-25 09:00")
    assert results[2].slots == []
    assert results[2].next_available is None
    assert all(slot.start >= at("2024-11-25 11:00") for slot in results[0].slots[2:])


def test_multi_professional_availability_on_closed_day(source):
    results = asyncio.run(
        _build_service(source).get_multi_professional_availability(
            ["pro-ana", "pro-bia"], SALON, "2024-11-24"
        )
    )

    assert [(r.professional_id, r.slots) for r in results] == [("pro-ana", []), ("pro-bia", [])]


def test_available_slots_use_call_arguments_not_configured_values():
    service = _build_service(InMemoryAppointmentSource(), slot_duration_minutes=60)

    # Sunday is a closed weekday, and the configured 60 minutes is not applied
    slots = _slots(service, day="2024-11-24")

    assert len(slots) == 18
    assert slots[0].duration_minutes() == 30
