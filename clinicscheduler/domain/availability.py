"""
Availability resolution for a single doctor.

This is pure domain logic: callers hand in the appointments they fetched,
nothing here talks to a store. Both operations are deterministic and never
mutate their inputs.
"""

from typing import Iterable, Iterator, List, Optional, Sequence

from pendulum import DateTime

from .exceptions import InvalidConfigurationError, NoSlotAvailableError
from .models import AppointmentInterval, AvailabilityResult, CandidateWindow
from .overlap import find_conflict
from .slot_grid import SlotGrid


class AvailabilityResolver:
    """
    Answers "is this slot free" and "what is the next free slot".

    Search policy for find_next_available:
    1. Round not_before up to the next grid boundary (09:05 -> 09:30 with
       30-minute slots); anything before opening starts at opening
    2. Walk grid-aligned starts in increasing order, slot_minutes apart
    3. Skip starts whose interval would run past the closing hour
    4. Return the first start without a conflict
    5. Move to the next open day until lookahead_days calendar days are
       exhausted
    """

    def __init__(
        self,
        slot_grid: SlotGrid,
        lookahead_days: int = 1,
        closed_weekdays: Sequence[int] = (),
    ):
        if lookahead_days < 1:
            raise InvalidConfigurationError(f"lookahead_days must be at least 1, got {lookahead_days}")
        self.slot_grid = slot_grid
        self.lookahead_days = lookahead_days
        self.closed_weekdays = frozenset(closed_weekdays)

    def is_available(
        self,
        candidate: CandidateWindow,
        existing_appointments: Iterable[AppointmentInterval],
    ) -> AvailabilityResult:
        """
        Check the candidate against the doctor's existing appointments.

        The reported conflict is the first overlapping appointment in the
        order given; pass appointments sorted by start to get the earliest.
        """
        conflict = find_conflict(candidate, existing_appointments)
        return AvailabilityResult(available=conflict is None, conflict=conflict)

    def find_next_available(
        self,
        doctor_id: str,
        not_before: DateTime,
        duration_minutes: int,
        existing_appointments: Iterable[AppointmentInterval],
        exclude_appointment_id: Optional[str] = None,
        lookahead_days: Optional[int] = None,
    ) -> DateTime:
        """
        Find the earliest grid-aligned start, no earlier than not_before,
        at which the doctor is free for duration_minutes.

        Args:
            doctor_id: Doctor whose schedule is searched
            not_before: Earliest acceptable start
            duration_minutes: Length of the appointment to place
            existing_appointments: The doctor's appointments in the search scope
            exclude_appointment_id: Appointment being edited, ignored in checks
            lookahead_days: Days to search, defaults to the resolver setting

        Returns:
            Start of the first free slot

        Raises:
            InvalidIntervalError: If duration_minutes <= 0 or doctor_id is empty
            NoSlotAvailableError: If nothing fits within the search scope
        """
        # Rejects a malformed request before any searching.
        CandidateWindow(doctor_id=doctor_id, start=not_before, duration_minutes=duration_minutes)

        days = lookahead_days if lookahead_days is not None else self.lookahead_days
        appointments: List[AppointmentInterval] = list(existing_appointments)

        for start in self._candidate_starts(not_before, duration_minutes, days):
            candidate = CandidateWindow(
                doctor_id=doctor_id,
                start=start,
                duration_minutes=duration_minutes,
                exclude_appointment_id=exclude_appointment_id,
            )
            if self.is_available(candidate, appointments).available:
                return start

        raise NoSlotAvailableError(doctor_id, duration_minutes, days)

    def _candidate_starts(
        self,
        not_before: DateTime,
        duration_minutes: int,
        days: int,
    ) -> Iterator[DateTime]:
        earliest = not_before.set(second=0, microsecond=0)
        if earliest < not_before:
            earliest = earliest.add(minutes=1)

        day = earliest.start_of("day")
        for _ in range(days):
            if day.weekday() not in self.closed_weekdays:
                _, closing = self.slot_grid.day_bounds(day)
                for start in self.slot_grid.slot_starts(day):
                    if start < earliest:
                        continue
                    if start.add(minutes=duration_minutes) > closing:
                        break
                    yield start
            day = day.add(days=1)
