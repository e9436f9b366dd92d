"""
Overlap detection between appointment intervals.

Intervals are half-open: an appointment ending at 10:00 does not conflict
with one starting at 10:00.
"""

from typing import TYPE_CHECKING, Iterable, Optional, Protocol

from pendulum import DateTime

if TYPE_CHECKING:
    from .models import AppointmentInterval, CandidateWindow


class Interval(Protocol):
    """Anything with a start and an exclusive end."""
    start: DateTime

    def end(self) -> DateTime:
        ...


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True if the half-open intervals a and b intersect."""
    return a.start < b.end() and a.end() > b.start


def find_conflict(
    candidate: "CandidateWindow",
    existing: Iterable["AppointmentInterval"],
) -> Optional["AppointmentInterval"]:
    """
    Return the first existing appointment that overlaps the candidate.

    Appointments are scanned in the order given, so callers wanting the
    earliest conflict must pass them sorted by start. Appointments of other
    doctors and the one named by candidate.exclude_appointment_id are
    skipped.
    """
    for appointment in existing:
        if appointment.doctor_id != candidate.doctor_id:
            continue
        if (
            candidate.exclude_appointment_id is not None
            and appointment.appointment_id == candidate.exclude_appointment_id
        ):
            continue
        if overlaps(candidate, appointment):
            return appointment
    return None
