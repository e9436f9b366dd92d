"""
Parsing of hospital backend appointment records into domain intervals.

Record format (as served by /api/appointments):
{
    "id": "64f1...",
    "doctorName": "Gregory House",
    "scheduledTime": "2024-11-25T09:00:00",
    "requiredTime": 30,
    "appointmentType": "Consultation",
    "patient": {"firstName": "Ada", "lastName": "Lovelace"}
}
"""

from typing import Any, Dict, Optional

import pendulum
from pendulum import DateTime

from ..domain.models import AppointmentInterval


def parse_datetime(value: str, timezone: str) -> DateTime:
    """
    Parse a local ISO date-time from the backend into the reference timezone.

    Raises:
        ValueError: If the value is not a date-time
    """
    dt = pendulum.parse(value, tz=timezone)
    if not isinstance(dt, DateTime):
        raise ValueError(f"Could not parse datetime: {value}")
    return dt.in_timezone(timezone)


def patient_label(record: Dict[str, Any]) -> str:
    patient: Optional[Dict[str, Any]] = record.get("patient")
    if not patient:
        return ""
    parts = [patient.get("firstName") or "", patient.get("lastName") or ""]
    return " ".join(part for part in parts if part)


def parse_appointment(record: Dict[str, Any], timezone: str) -> AppointmentInterval:
    """
    Convert one backend record into an AppointmentInterval.

    Raises:
        KeyError: If a required field is missing
        ValueError: If a field is malformed (including non-positive durations)
    """
    return AppointmentInterval(
        appointment_id=str(record["id"]),
        doctor_id=record["doctorName"],
        start=parse_datetime(record["scheduledTime"], timezone),
        duration_minutes=int(record["requiredTime"]),
        patient_label=patient_label(record),
        appointment_type=record.get("appointmentType"),
    )
