"""
Fixed-size slot grid over the working day.

The grid maps wall-clock times to zero-based slot indices and back. It is
used both to position appointments on a timeline and to enumerate the
grid-aligned start times searched by the availability resolver.

Out-of-hours policy: a time before the opening hour or at/after the closing
hour has no slot index. Such appointments are left off the timeline but are
still checked for conflicts, since overlap detection works on raw
timestamps.
"""

import math
from dataclasses import dataclass
from datetime import time
from typing import Iterator, Optional, Tuple

from pendulum import DateTime

from .exceptions import InvalidConfigurationError
from .models import AppointmentInterval, PlacedAppointment


class SlotBoundaries:
    """
    Restartable view over the (slot_index, time) boundaries of a grid.

    Every iteration starts again from the opening hour and ends with the
    closing hour, so for 09:00-17:00 with 30-minute slots there are 17
    boundaries: indices 0..16.
    """

    def __init__(self, grid: "SlotGrid"):
        self._grid = grid

    def __iter__(self) -> Iterator[Tuple[int, time]]:
        for index in range(self._grid.slot_count + 1):
            yield index, self._grid.time_of_slot(index)

    def __len__(self) -> int:
        return self._grid.slot_count + 1


@dataclass(frozen=True)
class SlotGrid:
    """
    Working-hours grid configuration.

    Invariant: 0 <= work_start_hour < work_end_hour <= 23 and slot_minutes > 0.
    The working day does not have to be a multiple of slot_minutes; the
    last boundary is then clamped to the closing hour.
    """
    work_start_hour: int = 9
    work_end_hour: int = 17
    slot_minutes: int = 30

    def __post_init__(self):
        for name in ("work_start_hour", "work_end_hour"):
            value = getattr(self, name)
            if not 0 <= value <= 23:
                raise InvalidConfigurationError(f"{name} must be between 0 and 23, got {value}")
        if self.work_end_hour <= self.work_start_hour:
            raise InvalidConfigurationError(
                f"work_end_hour ({self.work_end_hour}) must be later than "
                f"work_start_hour ({self.work_start_hour})"
            )
        if self.slot_minutes <= 0:
            raise InvalidConfigurationError(
                f"slot_minutes must be greater than zero, got {self.slot_minutes}"
            )

    @property
    def work_start_minute(self) -> int:
        return self.work_start_hour * 60

    @property
    def work_end_minute(self) -> int:
        return self.work_end_hour * 60

    @property
    def work_minutes(self) -> int:
        return self.work_end_minute - self.work_start_minute

    @property
    def slot_count(self) -> int:
        """Number of slots starting inside the working day."""
        return math.ceil(self.work_minutes / self.slot_minutes)

    def slot_index_of(self, time_of_day) -> Optional[int]:
        """
        Return the slot containing time_of_day, or None if it is out of hours.

        Accepts a datetime.time or any datetime; only hour and minute are used.
        """
        minute = time_of_day.hour * 60 + time_of_day.minute
        if not self.work_start_minute <= minute < self.work_end_minute:
            return None
        return (minute - self.work_start_minute) // self.slot_minutes

    def minute_of_slot(self, index: int) -> int:
        """Return the minute-of-day at which a slot starts."""
        if not 0 <= index <= self.slot_count:
            raise IndexError(f"Slot index {index} outside 0..{self.slot_count}")
        return min(self.work_start_minute + index * self.slot_minutes, self.work_end_minute)

    def time_of_slot(self, index: int) -> time:
        """Return the wall-clock start of a slot; slot_count maps to the closing hour."""
        hours, minutes = divmod(self.minute_of_slot(index), 60)
        return time(hour=hours, minute=minutes)

    def slot_boundaries(self) -> SlotBoundaries:
        """Return the boundaries of the working day, closing hour included."""
        return SlotBoundaries(self)

    def day_bounds(self, day: DateTime) -> Tuple[DateTime, DateTime]:
        """Get the opening and closing DateTime for the day of `day`, keeping its timezone."""
        opening = day.set(hour=self.work_start_hour, minute=0, second=0, microsecond=0)
        closing = day.set(hour=self.work_end_hour, minute=0, second=0, microsecond=0)
        return opening, closing

    def slot_starts(self, day: DateTime) -> Iterator[DateTime]:
        """Yield every grid-aligned slot start on a day, in increasing order."""
        opening, _ = self.day_bounds(day)
        for index in range(self.slot_count):
            yield opening.add(minutes=index * self.slot_minutes)

    def span_of(self, duration_minutes: int) -> int:
        """Number of slots an appointment of this length covers on the timeline."""
        return math.ceil(duration_minutes / self.slot_minutes)

    def place(self, appointment: AppointmentInterval) -> Optional[PlacedAppointment]:
        """
        Position an appointment on the grid.

        Returns None when the appointment starts outside working hours. The
        span stops at the closing hour, so an appointment running late never
        covers a slot past the end of the grid.
        """
        index = self.slot_index_of(appointment.start)
        if index is None:
            return None
        return PlacedAppointment(
            appointment=appointment,
            slot_index=index,
            span_slots=min(self.span_of(appointment.duration_minutes), self.slot_count - index),
        )
