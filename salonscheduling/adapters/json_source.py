"""
Appointment source that reads a JSON export of the booking database.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import AppointmentSourceError
from ..domain.models import (
    Appointment,
    AppointmentAssistant,
    AppointmentStatus,
    TimeBlock,
    TimeSlot,
)
from .memory_source import InMemoryAppointmentSource

logger = logging.getLogger(__name__)


def _parse_datetime(value: Optional[str], timezone: str) -> Optional[DateTime]:
    """Parse an ISO timestamp and express it in the salon timezone."""
    if value is None:
        return None
    parsed = pendulum.parse(value, tz=timezone)
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Could not parse datetime: {value}")
    return parsed.in_timezone(timezone)


def parse_appointment(record: Dict[str, Any], timezone: str) -> Appointment:
    """
    Build an Appointment from a camelCase record as exported by the booking API.

    Raises:
        KeyError: If a required field is missing
        ValueError: If a datetime or status cannot be parsed
    """
    client = record.get("client")
    if not isinstance(client, dict):
        client = {}
    slot = TimeSlot(
        start=_parse_datetime(record["startAt"], timezone),
        end=_parse_datetime(record["endAt"], timezone),
    )
    return Appointment(
        id=str(record["id"]),
        salon_id=str(record["salonId"]),
        professional_id=str(record["professionalId"]),
        start_at=slot.start,
        end_at=slot.end,
        status=AppointmentStatus(record.get("status", AppointmentStatus.CONFIRMED.value)),
        client_name=record.get("clientName") or client.get("name", ""),
        deleted_at=_parse_datetime(record.get("deletedAt"), timezone),
        assistant_ids=tuple(str(a) for a in record.get("assistantIds", [])),
    )


def parse_time_block(record: Dict[str, Any], timezone: str) -> TimeBlock:
    """Build a TimeBlock from a camelCase record."""
    slot = TimeSlot(
        start=_parse_datetime(record["startAt"], timezone),
        end=_parse_datetime(record["endAt"], timezone),
    )
    return TimeBlock(
        id=str(record["id"]),
        salon_id=str(record["salonId"]),
        professional_id=str(record["professionalId"]),
        start_at=slot.start,
        end_at=slot.end,
        block_type=record.get("type", "BREAK"),
        reason=record.get("reason") or "",
        deleted_at=_parse_datetime(record.get("deletedAt"), timezone),
    )


def parse_records(records: List[Dict[str, Any]], parser, timezone: str, kind: str) -> List[Any]:
    """Parse a list of records, skipping (and logging) malformed ones."""
    parsed = []
    for record in records:
        if not isinstance(record, dict):
            logger.warning("Skipping invalid %s record %r: not an object", kind, record)
            continue
        try:
            parsed.append(parser(record, timezone))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("Skipping invalid %s record %r: %s", kind, record.get("id"), e)
    return parsed


class JsonAppointmentSource(InMemoryAppointmentSource):
    """
    Loads appointments, assistant links and time blocks from a JSON file.

    Expected layout::

        {
            "appointments": [{"id": "...", "salonId": "...", "professionalId": "...",
                              "startAt": "2024-11-25T10:00:00", "endAt": "...",
                              "status": "CONFIRMED", "clientName": "..."}],
            "assistants": [{"appointmentId": "...", "assistantUserId": "..."}],
            "timeBlocks": [{"id": "...", "salonId": "...", "professionalId": "...",
                            "startAt": "...", "endAt": "...", "type": "VACATION"}]
        }

    Datetimes without an offset are read in ``timezone``; all are converted
    to it.
    """

    def __init__(self, data_file: Path, timezone: str = "America/Sao_Paulo"):
        self.data_file = Path(data_file)
        self.timezone = timezone
        super().__init__()
        self._load()

    def _load(self) -> None:
        if not self.data_file.exists():
            raise AppointmentSourceError(f"Appointment data file not found: {self.data_file}")

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise AppointmentSourceError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise AppointmentSourceError("Appointment data file must contain an object at the root.")

        self.appointments = parse_records(
            data.get("appointments", []), parse_appointment, self.timezone, "appointment"
        )
        self.time_blocks = parse_records(
            data.get("timeBlocks", []), parse_time_block, self.timezone, "time block"
        )
        self.assistants = [
            AppointmentAssistant(
                appointment_id=str(link["appointmentId"]),
                assistant_user_id=str(link["assistantUserId"]),
            )
            for link in data.get("assistants", [])
            if isinstance(link, dict) and "appointmentId" in link and "assistantUserId" in link
        ]

        logger.debug(
            "Loaded %d appointment(s) and %d time block(s) from %s",
            len(self.appointments),
            len(self.time_blocks),
            self.data_file,
        )
