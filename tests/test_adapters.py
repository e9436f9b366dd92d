"""
Tests for the appointment store adapters.
"""

import json
from typing import List

import pendulum
import pytest
import requests

from clinicscheduler.adapters.api_client import AppointmentApiClient
from clinicscheduler.adapters.cached_store import CachedAppointmentStore
from clinicscheduler.adapters.json_store import JsonAppointmentStore
from clinicscheduler.domain.exceptions import AppointmentStoreError
from clinicscheduler.domain.models import AppointmentInterval

TZ = "Europe/London"
HOUSE = "Gregory House"


def _at(text: str):
    return pendulum.parse(text, tz=TZ)


def _record(appointment_id: str, start: str, minutes: int, doctor: str = HOUSE) -> dict:
    return {
        "id": appointment_id,
        "doctorName": doctor,
        "scheduledTime": start,
        "requiredTime": minutes,
        "appointmentType": "Consultation",
        "patient": {"firstName": "Ada", "lastName": "Lovelace"},
    }


class TestJsonAppointmentStore:
    """Tests for the file-backed store."""

    def test_bundled_sample_data(self):
        store = JsonAppointmentStore(timezone=TZ)

        appointments = store.get_appointments(
            doctor_id=HOUSE,
            start_time=_at("2024-11-25 00:00"),
            end_time=_at("2024-11-26 00:00"),
        )

        assert [appt.appointment_id for appt in appointments] == ["apt-1001", "apt-1002", "apt-1003"]
        assert appointments[0].patient_label == "Ada Lovelace"
        assert store.doctor_ids() == ["Gregory House", "Meredith Grey"]

    def test_unscheduled_and_invalid_records_are_skipped(self, tmp_path):
        data_file = tmp_path / "appointments.json"
        data_file.write_text(json.dumps([
            _record("ok", "2024-11-25T09:00:00", 30),
            _record("zero", "2024-11-25T10:00:00", 0),
            _record("unscheduled", None, 30),
            {"id": "broken", "doctorName": HOUSE},
        ]), encoding="utf-8")

        store = JsonAppointmentStore(data_file=data_file, timezone=TZ)

        assert [appt.appointment_id for appt in store.appointments] == ["ok"]

    def test_non_object_records_are_skipped(self, tmp_path):
        data_file = tmp_path / "appointments.json"
        data_file.write_text(json.dumps([
            1,
            "apt-9",
            None,
            _record("ok", "2024-11-25T09:00:00", 30),
        ]), encoding="utf-8")

        store = JsonAppointmentStore(data_file=data_file, timezone=TZ)

        assert [appt.appointment_id for appt in store.appointments] == ["ok"]

    def test_root_must_be_a_list(self, tmp_path):
        data_file = tmp_path / "appointments.json"
        data_file.write_text(json.dumps({"appointments": []}), encoding="utf-8")

        with pytest.raises(AppointmentStoreError, match="list of appointments"):
            JsonAppointmentStore(data_file=data_file, timezone=TZ)

    def test_window_filter_uses_overlap(self, tmp_path):
        """Appointments touching the window edge are left out."""
        data_file = tmp_path / "appointments.json"
        data_file.write_text(json.dumps([
            _record("before", "2024-11-25T08:30:00", 30),
            _record("inside", "2024-11-25T09:15:00", 30),
            _record("spanning", "2024-11-25T09:50:00", 30),
        ]), encoding="utf-8")
        store = JsonAppointmentStore(data_file=data_file, timezone=TZ)

        appointments = store.get_appointments(HOUSE, _at("2024-11-25 09:00"), _at("2024-11-25 10:00"))

        assert [appt.appointment_id for appt in appointments] == ["inside", "spanning"]


class CountingStore:
    def __init__(self):
        self.calls = 0
        self.fail = False

    def get_appointments(self, doctor_id, start_time, end_time) -> List[AppointmentInterval]:
        self.calls += 1
        if self.fail:
            raise AppointmentStoreError("backend down")
        return [AppointmentInterval(
            appointment_id=f"{doctor_id}-{self.calls}",
            doctor_id=doctor_id,
            start=start_time,
            duration_minutes=30,
        )]


class FakeClock:
    def __init__(self):
        self.now = _at("2024-11-25 08:00")

    def __call__(self):
        return self.now


class TestCachedAppointmentStore:
    """Tests for the TTL cache."""

    def test_hit_within_ttl(self):
        inner, clock = CountingStore(), FakeClock()
        store = CachedAppointmentStore(inner, ttl_seconds=60, clock=clock)
        window = (HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

        first = store.get_appointments(*window)
        clock.now = clock.now.add(seconds=59)
        second = store.get_appointments(*window)

        assert inner.calls == 1
        assert first == second

    def test_expired_entries_are_refetched(self):
        inner, clock = CountingStore(), FakeClock()
        store = CachedAppointmentStore(inner, ttl_seconds=60, clock=clock)
        window = (HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

        store.get_appointments(*window)
        clock.now = clock.now.add(seconds=60)
        store.get_appointments(*window)

        assert inner.calls == 2

    def test_expired_entry_removed_concurrently(self):
        """Another caller dropping the same expired entry first is harmless."""

        class RacingEntries(dict):
            def get(self, key, default=None):
                value = super().get(key, default)
                super().pop(key, None)
                return value

        inner, clock = CountingStore(), FakeClock()
        store = CachedAppointmentStore(inner, ttl_seconds=60, clock=clock)
        window = (HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))
        store.get_appointments(*window)
        store._entries = RacingEntries(store._entries)

        clock.now = clock.now.add(seconds=61)
        appointments = store.get_appointments(*window)

        assert inner.calls == 2
        assert appointments[0].appointment_id == f"{HOUSE}-2"

    def test_keys_include_window(self):
        inner = CountingStore()
        store = CachedAppointmentStore(inner, ttl_seconds=60, clock=FakeClock())

        store.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))
        store.get_appointments(HOUSE, _at("2024-11-26 00:00"), _at("2024-11-27 00:00"))
        store.get_appointments("Meredith Grey", _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

        assert inner.calls == 3
        assert len(store) == 3

    def test_invalidate_one_doctor(self):
        inner = CountingStore()
        store = CachedAppointmentStore(inner, ttl_seconds=60, clock=FakeClock())
        store.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))
        store.get_appointments("Meredith Grey", _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

        removed = store.invalidate(HOUSE)

        assert removed == 1
        assert len(store) == 1
        assert store.invalidate() == 1
        assert len(store) == 0

    def test_zero_ttl_disables_caching(self):
        inner = CountingStore()
        store = CachedAppointmentStore(inner, ttl_seconds=0, clock=FakeClock())

        store.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))
        store.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

        assert inner.calls == 2

    def test_failures_are_not_cached(self):
        inner = CountingStore()
        inner.fail = True
        store = CachedAppointmentStore(inner, ttl_seconds=60, clock=FakeClock())

        with pytest.raises(AppointmentStoreError):
            store.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))
        inner.fail = False
        appointments = store.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

        assert inner.calls == 2
        assert len(appointments) == 1


class FakeResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class TestAppointmentApiClient:
    """Tests for the REST backend client."""

    def test_get_appointments_request_and_parsing(self, monkeypatch):
        captured = {}

        def fake_get(url, headers, params, timeout):
            captured.update(url=url, headers=headers, params=params, timeout=timeout)
            return FakeResponse([
                _record("a1", "2024-11-25T09:00:00", 30),
                _record("unscheduled", None, 30),
                _record("bad", "not a date", 30),
            ])

        monkeypatch.setattr(requests, "get", fake_get)
        client = AppointmentApiClient("http://backend:8080/", api_token="secret", timeout=5, timezone=TZ)

        appointments = client.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

        assert captured["url"] == "http://backend:8080/api/appointments/doctor/Gregory%20House/daterange"
        assert captured["params"] == {
            "startTime": "2024-11-25T00:00:00",
            "endTime": "2024-11-26T00:00:00",
        }
        assert captured["headers"]["Authorization"] == "Bearer secret"
        assert captured["timeout"] == 5
        assert len(appointments) == 1
        assert appointments[0].appointment_id == "a1"
        assert appointments[0].start == _at("2024-11-25 09:00")
        assert appointments[0].patient_label == "Ada Lovelace"

    def test_transport_error_raises_store_error(self, monkeypatch):
        def fake_get(url, headers, params, timeout):
            raise requests.exceptions.ConnectionError("refused")

        monkeypatch.setattr(requests, "get", fake_get)
        client = AppointmentApiClient("http://backend:8080", timezone=TZ)

        with pytest.raises(AppointmentStoreError, match="refused"):
            client.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

    def test_http_error_raises_store_error(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda *args, **kwargs: FakeResponse([], status_code=500))
        client = AppointmentApiClient("http://backend:8080", timezone=TZ)

        with pytest.raises(AppointmentStoreError):
            client.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

    def test_non_list_payload_raises_store_error(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda *args, **kwargs: FakeResponse({"error": "nope"}))
        client = AppointmentApiClient("http://backend:8080", timezone=TZ)

        with pytest.raises(AppointmentStoreError, match="list"):
            client.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

    def test_invalid_json_raises_store_error(self, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda *args, **kwargs: FakeResponse(ValueError("bad json")))
        client = AppointmentApiClient("http://backend:8080", timezone=TZ)

        with pytest.raises(AppointmentStoreError, match="invalid JSON"):
            client.get_appointments(HOUSE, _at("2024-11-25 00:00"), _at("2024-11-26 00:00"))

    def test_no_token_no_authorization_header(self):
        client = AppointmentApiClient("http://backend:8080")

        assert "Authorization" not in client.headers
