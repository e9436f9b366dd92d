"""
Domain models for appointment intervals and availability answers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pendulum import DateTime

from .exceptions import InvalidIntervalError
from .overlap import overlaps


def _validate_interval(doctor_id: str, duration_minutes: int) -> None:
    if not doctor_id:
        raise InvalidIntervalError("An appointment interval needs a doctor id")
    if duration_minutes <= 0:
        raise InvalidIntervalError(
            f"Duration must be a positive number of minutes, got {duration_minutes}"
        )


@dataclass(frozen=True)
class AppointmentInterval:
    """
    A persisted appointment seen as the half-open interval [start, end).

    Invariant: duration_minutes > 0 and doctor_id is set.
    """
    appointment_id: str
    doctor_id: str
    start: DateTime
    duration_minutes: int
    patient_label: str = ""
    appointment_type: Optional[str] = None

    def __post_init__(self):
        _validate_interval(self.doctor_id, self.duration_minutes)

    def end(self) -> DateTime:
        """Return the exclusive end of the appointment."""
        return self.start.add(minutes=self.duration_minutes)

    def overlaps(self, other) -> bool:
        """Check if this appointment overlaps another interval."""
        return overlaps(self, other)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "id": self.appointment_id,
            "doctor": self.doctor_id,
            "patient": self.patient_label,
            "type": self.appointment_type,
            "start": self.start.to_iso8601_string(),
            "end": self.end().to_iso8601_string(),
            "durationMinutes": self.duration_minutes,
        }

    def format_display(self) -> str:
        """
        Format the appointment for display.
        Format: Mon, DD.MM.YYYY | HH:mm - HH:mm (N min) patient
        """
        label = f" {self.patient_label}" if self.patient_label else ""
        return (
            f"{self.start.format('ddd, DD.MM.YYYY')} | "
            f"{self.start.format('HH:mm')} - {self.end().format('HH:mm')} "
            f"({self.duration_minutes} min){label}"
        )

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end().format('HH:mm')}"


@dataclass(frozen=True)
class CandidateWindow:
    """
    A proposed appointment that has not been persisted yet.

    exclude_appointment_id names the appointment being edited so that it
    does not conflict with itself.
    """
    doctor_id: str
    start: DateTime
    duration_minutes: int
    exclude_appointment_id: Optional[str] = None

    def __post_init__(self):
        _validate_interval(self.doctor_id, self.duration_minutes)

    def end(self) -> DateTime:
        """Return the exclusive end of the candidate."""
        return self.start.add(minutes=self.duration_minutes)

    def overlaps(self, other) -> bool:
        """Check if this candidate overlaps another interval."""
        return overlaps(self, other)


@dataclass(frozen=True)
class AvailabilityResult:
    """Answer to an availability query."""
    available: bool
    conflict: Optional[AppointmentInterval] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "conflict": self.conflict.to_dict() if self.conflict else None,
        }


@dataclass(frozen=True)
class PlacedAppointment:
    """An appointment positioned on the slot grid for timeline rendering."""
    appointment: AppointmentInterval
    slot_index: int
    span_slots: int


@dataclass
class DoctorTimeline:
    """
    One doctor's appointments for a day, split by grid placement.

    off_grid holds appointments starting outside working hours; they are
    not drawn on the grid but still count for conflict checks.
    """
    doctor_id: str
    placed: List[PlacedAppointment] = field(default_factory=list)
    off_grid: List[AppointmentInterval] = field(default_factory=list)

    def occupied_slots(self) -> Dict[int, PlacedAppointment]:
        """Map every covered slot index to the appointment covering it."""
        occupied: Dict[int, PlacedAppointment] = {}
        for placed in self.placed:
            for index in range(placed.slot_index, placed.slot_index + placed.span_slots):
                occupied.setdefault(index, placed)
        return occupied
