"""
Application services for doctor availability.

The service coordinates fetching appointments via an appointment store
adapter and delegates the actual availability decisions to the domain-level
``AvailabilityResolver``. This keeps the CLI thin and lets tests swap the
store for a stub implementing a simple protocol.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.availability import AvailabilityResolver
from ..domain.exceptions import InvalidConfigurationError
from ..domain.models import (
    AppointmentInterval,
    AvailabilityResult,
    CandidateWindow,
    DoctorTimeline,
)

logger = logging.getLogger(__name__)


class AppointmentStoreProtocol(Protocol):
    """Protocol describing the store behaviour needed by the service."""

    def get_appointments(
        self,
        doctor_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[AppointmentInterval]:
        """Return the doctor's appointments overlapping [start_time, end_time)."""


class SchedulingService:
    """
    Orchestrates appointment retrieval and availability resolution.

    lookahead_days is the number of calendar days suggest_next_slot searches
    when the caller does not ask for a specific scope.

    Store failures are not handled here; they propagate to the caller, which
    decides whether to retry.
    """

    def __init__(
        self,
        store: AppointmentStoreProtocol,
        resolver: AvailabilityResolver,
        lookahead_days: int = 1,
    ) -> None:
        if lookahead_days < 1:
            raise InvalidConfigurationError(f"lookahead_days must be at least 1, got {lookahead_days}")
        self._store = store
        self._resolver = resolver
        self.lookahead_days = lookahead_days

    @property
    def resolver(self) -> AvailabilityResolver:
        return self._resolver

    def fetch_appointments(
        self,
        *,
        doctor_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[AppointmentInterval]:
        """Fetch the doctor's appointments in a window, sorted by start."""
        appointments = self._store.get_appointments(
            doctor_id=doctor_id,
            start_time=start_time,
            end_time=end_time,
        )
        own = [appt for appt in appointments if appt.doctor_id == doctor_id]
        if len(own) != len(appointments):
            logger.debug(
                "Dropped %d appointment(s) of other doctors from store response",
                len(appointments) - len(own),
            )
        logger.debug(
            "Fetched %d appointment(s) for %s between %s and %s",
            len(own), doctor_id, start_time, end_time,
        )
        return sorted(own, key=lambda appt: appt.start)

    def check_availability(
        self,
        *,
        doctor_id: str,
        start: DateTime,
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> AvailabilityResult:
        """
        Check whether the doctor is free for the candidate window.

        The candidate is validated before the store is queried, so a
        malformed request never costs a round trip.
        """
        candidate = CandidateWindow(
            doctor_id=doctor_id,
            start=start,
            duration_minutes=duration_minutes,
            exclude_appointment_id=exclude_appointment_id,
        )
        day_start = start.start_of("day")
        window_end = max(day_start.add(days=1), candidate.end())
        appointments = self.fetch_appointments(
            doctor_id=doctor_id,
            start_time=day_start,
            end_time=window_end,
        )
        result = self._resolver.is_available(candidate, appointments)
        logger.debug("Availability of %s at %s: %s", doctor_id, start, result.available)
        return result

    def suggest_next_slot(
        self,
        *,
        doctor_id: str,
        not_before: DateTime,
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
        lookahead_days: Optional[int] = None,
    ) -> DateTime:
        """
        Suggest the first free grid-aligned start at or after not_before.

        Raises:
            NoSlotAvailableError: If the doctor is booked out in the scope
        """
        # Validate before the store round trip.
        CandidateWindow(doctor_id=doctor_id, start=not_before, duration_minutes=duration_minutes)

        days = lookahead_days if lookahead_days is not None else self.lookahead_days
        window_start = not_before.start_of("day")
        appointments = self.fetch_appointments(
            doctor_id=doctor_id,
            start_time=window_start,
            end_time=window_start.add(days=days),
        )
        return self._resolver.find_next_available(
            doctor_id=doctor_id,
            not_before=not_before,
            duration_minutes=duration_minutes,
            existing_appointments=appointments,
            exclude_appointment_id=exclude_appointment_id,
            lookahead_days=days,
        )

    def build_timeline(
        self,
        *,
        doctor_ids: Sequence[str],
        day: DateTime,
    ) -> List[DoctorTimeline]:
        """Position each doctor's appointments for the day on the slot grid."""
        grid = self._resolver.slot_grid
        day_start = day.start_of("day")
        timelines: List[DoctorTimeline] = []

        for doctor_id in doctor_ids:
            timeline = DoctorTimeline(doctor_id=doctor_id)
            appointments = self.fetch_appointments(
                doctor_id=doctor_id,
                start_time=day_start,
                end_time=day_start.add(days=1),
            )
            for appointment in appointments:
                # Carry-overs from the previous day are never drawn on this grid.
                placed = grid.place(appointment) if appointment.start >= day_start else None
                if placed is None:
                    timeline.off_grid.append(appointment)
                else:
                    timeline.placed.append(placed)
            timelines.append(timeline)

        return timelines
