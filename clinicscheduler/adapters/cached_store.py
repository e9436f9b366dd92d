"""
Time-boxed cache in front of an appointment store.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

import pendulum
from pendulum import DateTime

from ..domain.models import AppointmentInterval
from ..services.scheduling import AppointmentStoreProtocol

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, DateTime, DateTime]


class CachedAppointmentStore:
    """
    Caches store answers per (doctor_id, start_time, end_time) window.

    Entries expire ttl_seconds after they were fetched. A cached answer may
    be stale by up to ttl_seconds, so callers booking an appointment must
    still rely on the store to reject double bookings. Failures are never
    cached.
    """

    def __init__(
        self,
        store: AppointmentStoreProtocol,
        ttl_seconds: int = 60,
        clock: Callable[[], DateTime] = pendulum.now,
    ):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must not be negative")
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[DateTime, List[AppointmentInterval]]] = {}

    def get_appointments(
        self,
        doctor_id: str,
        start_time: DateTime,
        end_time: DateTime,
    ) -> List[AppointmentInterval]:
        key = (doctor_id, start_time, end_time)
        now = self._clock()

        entry = self._entries.get(key)
        if entry is not None:
            expires_at, appointments = entry
            if now < expires_at:
                logger.debug("Cache hit for %s %s-%s", doctor_id, start_time, end_time)
                return list(appointments)
            self._entries.pop(key, None)

        appointments = self._store.get_appointments(
            doctor_id=doctor_id,
            start_time=start_time,
            end_time=end_time,
        )
        if self._ttl_seconds:
            self._entries[key] = (now.add(seconds=self._ttl_seconds), list(appointments))
        return appointments

    def invalidate(self, doctor_id: Optional[str] = None) -> int:
        """
        Drop cached windows, for one doctor or all of them.

        Returns:
            Number of entries removed
        """
        if doctor_id is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            keys = [key for key in self._entries if key[0] == doctor_id]
            for key in keys:
                self._entries.pop(key, None)
            removed = len(keys)
        logger.info("Invalidated %d cached appointment window(s)", removed)
        return removed

    def __len__(self) -> int:
        return len(self._entries)
