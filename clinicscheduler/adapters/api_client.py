"""
HTTP client for the hospital appointment backend.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from pendulum import DateTime

from ..domain.exceptions import AppointmentStoreError
from ..domain.models import AppointmentInterval
from .records import parse_appointment

logger = logging.getLogger(__name__)


class AppointmentApiClient:
    """
    Client for the backend's appointment REST API.

    Uses the /api/appointments/doctor/{doctorName}/daterange endpoint to
    fetch a doctor's appointments in a time window.
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: int = 30,
        timezone: str = "Europe/London",
    ):
        """
        Initialize the API client.

        Args:
            base_url: Backend root, e.g. http://localhost:8080
            api_token: Optional bearer token
            timeout: Request timeout in seconds
            timezone: Reference timezone of the backend's local date-times
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.timezone = timezone
        self.headers = {"Accept": "application/json"}
        if api_token:
            self.headers["Authorization"] = f"Bearer {api_token}"

    def get_appointments(
        self,
        doctor_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[AppointmentInterval]:
        """
        Get a doctor's appointments between start_time and end_time.

        Raises:
            AppointmentStoreError: If the API call fails or returns no list
        """
        url = f"{self.base_url}/api/appointments/doctor/{quote(doctor_id, safe='')}/daterange"
        params = {
            "startTime": self._format_local(start_time),
            "endTime": self._format_local(end_time),
        }

        try:
            response = requests.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()

        except requests.exceptions.RequestException as e:
            raise AppointmentStoreError(f"Failed to fetch appointments for {doctor_id}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise AppointmentStoreError(f"Backend returned invalid JSON: {e}") from e

        if not isinstance(data, list):
            raise AppointmentStoreError("Backend response must be a list of appointments")

        return self._parse_appointments(data)

    def _parse_appointments(self, records: List[Dict[str, Any]]) -> List[AppointmentInterval]:
        appointments: List[AppointmentInterval] = []

        for record in records:
            # Unscheduled appointments have no place on a timeline yet.
            if not isinstance(record, dict) or record.get("scheduledTime") is None:
                continue
            try:
                appointments.append(parse_appointment(record, self.timezone))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Could not parse appointment record %s: %s", record.get("id"), e)
                continue

        return appointments

    def _format_local(self, dt: DateTime) -> str:
        return dt.in_timezone(self.timezone).format("YYYY-MM-DD[T]HH:mm:ss")
