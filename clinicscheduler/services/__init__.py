"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .scheduling import AppointmentStoreProtocol, SchedulingService

__all__ = ["AppointmentStoreProtocol", "SchedulingService"]
