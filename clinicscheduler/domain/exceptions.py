"""
Domain-specific exception hierarchy for the clinic scheduler.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidIntervalError(SchedulingError, ValueError):
    """Raised when an appointment or candidate interval is malformed."""


class InvalidConfigurationError(SchedulingError, ValueError):
    """Raised when the slot grid or working hours are misconfigured."""


class NoSlotAvailableError(SchedulingError):
    """
    Raised when no free slot exists within the search scope.

    This is a business outcome, not a system fault: callers should report
    "no availability" and must not retry it as if it were transient.
    """

    def __init__(self, doctor_id: str, duration_minutes: int, searched_days: int):
        self.doctor_id = doctor_id
        self.duration_minutes = duration_minutes
        self.searched_days = searched_days
        super().__init__(
            f"No free {duration_minutes}-minute slot for {doctor_id} "
            f"within {searched_days} working day(s)"
        )


class AppointmentStoreError(SchedulingError):
    """Raised when appointments cannot be fetched or parsed from the store."""
