"""
Booking API client for fetching appointments and time blocks.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests
from pendulum import DateTime

from ..domain.exceptions import AppointmentSourceError
from ..domain.models import Appointment, TimeBlock
from .json_source import parse_appointment, parse_records, parse_time_block

logger = logging.getLogger(__name__)


class AppointmentApiClient:
    """
    Client for the salon booking REST API.

    Uses the read-only listing endpoints:

    - ``GET {base_url}/salons/{salon_id}/appointments``
    - ``GET {base_url}/salons/{salon_id}/time-blocks``

    Both return a JSON list of camelCase records (see ``JsonAppointmentSource``).
    The requests run in a worker thread so the engine's coroutines do not
    block the event loop.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str = "",
        timezone: str = "America/Sao_Paulo",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: API root, e.g. ``https://api.example.com/v1``
            access_token: Bearer token; omitted from headers when empty
            timezone: Timezone for datetimes that carry no offset
            timeout: Per-request timeout in seconds
            session: Optional requests session (connection pooling, tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timezone = timezone
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json"}
        if access_token:
            self.headers["Authorization"] = f"Bearer {access_token}"

    def _get(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        query = {key: value for key, value in params.items() if value is not None}

        try:
            response = self.session.get(
                url, headers=self.headers, params=query, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise AppointmentSourceError(f"Failed to fetch {path} from booking API: {e}") from e
        except ValueError as e:
            raise AppointmentSourceError(f"Booking API returned invalid JSON for {path}: {e}") from e

        if not isinstance(data, list):
            raise AppointmentSourceError(
                f"Booking API returned {type(data).__name__} for {path}, expected a list"
            )

        logger.debug("GET %s returned %d record(s)", path, len(data))
        return data

    @staticmethod
    def _window_params(start: Optional[DateTime], end: Optional[DateTime]) -> Dict[str, Any]:
        return {
            "from": start.to_iso8601_string() if start is not None else None,
            "to": end.to_iso8601_string() if end is not None else None,
        }

    def list_appointments(
        self,
        salon_id: str,
        *,
        professional_id: Optional[str] = None,
        assistant_id: Optional[str] = None,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        """
        Fetch active appointments of a salon.

        Raises:
            AppointmentSourceError: If the API call fails
        """
        params = {
            "professionalId": professional_id,
            "assistantId": assistant_id,
            "excludeId": exclude_appointment_id,
            "active": "true",
            **self._window_params(start, end),
        }
        records = self._get(f"/salons/{salon_id}/appointments", params)
        appointments = parse_records(records, parse_appointment, self.timezone, "appointment")
        return sorted(
            (a for a in appointments if a.is_active and a.id != exclude_appointment_id),
            key=lambda a: (a.start_at, a.id),
        )

    def list_time_blocks(
        self,
        salon_id: str,
        professional_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeBlock]:
        """Fetch time blocks of a professional intersecting a window."""
        params = {"professionalId": professional_id, **self._window_params(start, end)}
        records = self._get(f"/salons/{salon_id}/time-blocks", params)
        blocks = parse_records(records, parse_time_block, self.timezone, "time block")
        return sorted((b for b in blocks if b.is_active), key=lambda b: (b.start_at, b.id))

    async def find_professional_appointments(
        self,
        professional_id: str,
        salon_id: str,
        *,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        return await asyncio.to_thread(
            self.list_appointments,
            salon_id,
            professional_id=professional_id,
            start=start,
            end=end,
            exclude_appointment_id=exclude_appointment_id,
        )

    async def find_assistant_appointments(
        self,
        assistant_id: str,
        salon_id: str,
        *,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        return await asyncio.to_thread(
            self.list_appointments,
            salon_id,
            assistant_id=assistant_id,
            start=start,
            end=end,
            exclude_appointment_id=exclude_appointment_id,
        )

    async def find_time_blocks(
        self,
        professional_id: str,
        salon_id: str,
        *,
        start: DateTime,
        end: DateTime,
    ) -> List[TimeBlock]:
        return await asyncio.to_thread(
            self.list_time_blocks, salon_id, professional_id, start, end
        )

    def test_connection(self) -> bool:
        """
        Check that the API answers a health request.

        Raises:
            AppointmentSourceError: If the connection test fails
        """
        try:
            response = self.session.get(
                f"{self.base_url}/health", headers=self.headers, timeout=10
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise AppointmentSourceError(f"Connection test failed: {e}") from e
        return True
