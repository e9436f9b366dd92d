"""
Adapters layer - Appointment stores (hospital REST backend, JSON file, cache).
"""

from .api_client import AppointmentApiClient
from .cached_store import CachedAppointmentStore
from .json_store import JsonAppointmentStore

__all__ = ["AppointmentApiClient", "CachedAppointmentStore", "JsonAppointmentStore"]
