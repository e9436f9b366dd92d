"""
File-backed appointment store for demos and tests without a backend.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pendulum import DateTime

from ..domain.exceptions import AppointmentStoreError
from ..domain.models import AppointmentInterval
from .records import parse_appointment

logger = logging.getLogger(__name__)

SAMPLE_DATA_FILE = Path(__file__).parent / "sample_appointments.json"


class JsonAppointmentStore:
    """
    Store that serves appointments from a JSON file.

    The file holds a list of records in the backend's format, so the CLI's
    --mock mode behaves like the real API without network access.
    """

    def __init__(self, data_file: Optional[Path] = None, timezone: str = "Europe/London"):
        """
        Initialize the store.

        Args:
            data_file: JSON file with appointment records, defaults to the bundled sample
            timezone: Timezone the records' local date-times are in
        """
        self.data_file = data_file or SAMPLE_DATA_FILE
        self.timezone = timezone
        self.appointments = self._load_appointments()

    def _load_appointments(self) -> List[AppointmentInterval]:
        """
        Load and parse appointment records from the JSON file.

        Raises:
            AppointmentStoreError: If the file does not hold a list of records
        """
        with open(self.data_file, "r", encoding="utf-8") as f:
            records: List[Dict[str, Any]] = json.load(f)

        if not isinstance(records, list):
            raise AppointmentStoreError(f"{self.data_file} must contain a list of appointments")

        appointments: List[AppointmentInterval] = []
        for record in records:
            if not isinstance(record, dict):
                logger.warning("Skipping appointment record that is not an object: %r", record)
                continue
            if record.get("scheduledTime") is None:
                continue
            try:
                appointments.append(parse_appointment(record, self.timezone))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid appointment record %s: %s", record.get("id"), e)
                continue

        return appointments

    def get_appointments(
        self,
        doctor_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[AppointmentInterval]:
        """Return the doctor's appointments overlapping [start_time, end_time)."""
        return [
            appt for appt in self.appointments
            if appt.doctor_id == doctor_id
            and appt.start < end_time
            and appt.end() > start_time
        ]

    def doctor_ids(self) -> List[str]:
        """List every doctor that has at least one appointment, in file order."""
        seen: List[str] = []
        for appt in self.appointments:
            if appt.doctor_id not in seen:
                seen.append(appt.doctor_id)
        return seen
