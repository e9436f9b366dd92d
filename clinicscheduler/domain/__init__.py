"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .availability import AvailabilityResolver
from .exceptions import (
    AppointmentStoreError,
    InvalidConfigurationError,
    InvalidIntervalError,
    NoSlotAvailableError,
    SchedulingError,
)
from .models import (
    AppointmentInterval,
    AvailabilityResult,
    CandidateWindow,
    DoctorTimeline,
    PlacedAppointment,
)
from .overlap import find_conflict, overlaps
from .slot_grid import SlotGrid

__all__ = [
    "AppointmentInterval",
    "AppointmentStoreError",
    "AvailabilityResolver",
    "AvailabilityResult",
    "CandidateWindow",
    "DoctorTimeline",
    "InvalidConfigurationError",
    "InvalidIntervalError",
    "NoSlotAvailableError",
    "PlacedAppointment",
    "SchedulingError",
    "SlotGrid",
    "find_conflict",
    "overlaps",
]
