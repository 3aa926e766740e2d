"""Alarm persistence: REST client for the alarm API, plus an in-memory store."""

import itertools
import threading
from typing import Optional

import requests

from .config import API_BASE_URL, API_TIMEOUT, DEBUG
from .models import Alarm, InvalidAlarmError


def _parse_alarms(records: list) -> list[Alarm]:
    alarms = []
    for record in records:
        try:
            alarms.append(Alarm.from_dict(record))
        except InvalidAlarmError as e:
            print(f"[Store] Skipping invalid alarm record: {e}")
    return alarms


class AlarmStore:
    """Client for the alarm REST API (/api/alarms)."""

    def __init__(self, base_url: str = API_BASE_URL, timeout: float = API_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()

    def _request(self, method: str, endpoint: str, data: Optional[dict] = None) -> requests.Response:
        """Make a request to the alarm API, raising on HTTP errors."""
        url = f"{self.base_url}{endpoint}"
        if DEBUG:
            print(f"[Store] {method} {url} -> {data}")
        response = self._session.request(method, url, json=data, timeout=self.timeout)
        response.raise_for_status()
        return response

    def list_alarms(self) -> list[Alarm]:
        return _parse_alarms(self._request("GET", "/api/alarms").json())

    def create_alarm(self, spec: dict) -> Alarm:
        return Alarm.from_dict(self._request("POST", "/api/alarms", spec).json())

    def update_alarm(self, alarm_id: int, partial: dict) -> Alarm:
        return Alarm.from_dict(self._request("PATCH", f"/api/alarms/{alarm_id}", partial).json())

    def delete_alarm(self, alarm_id: int) -> None:
        self._request("DELETE", f"/api/alarms/{alarm_id}")


class MemoryAlarmStore:
    """In-process store with the same interface as AlarmStore."""

    def __init__(self, records: Optional[list] = None):
        self._records: dict[int, dict] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        for record in records or []:
            self.create_alarm(record)

    def list_alarms(self) -> list[Alarm]:
        with self._lock:
            records = [dict(record) for record in self._records.values()]
        return _parse_alarms(records)

    def create_alarm(self, spec: dict) -> Alarm:
        with self._lock:
            record = dict(spec)
            if "id" not in record:
                new_id = next(self._ids)
                while new_id in self._records:
                    new_id = next(self._ids)
                record["id"] = new_id
            # Validate before storing
            alarm = Alarm.from_dict(record)
            self._records[alarm.id] = record
        return alarm

    def update_alarm(self, alarm_id: int, partial: dict) -> Alarm:
        with self._lock:
            if alarm_id not in self._records:
                raise KeyError(f"Alarm not found: {alarm_id}")
            record = {**self._records[alarm_id], **partial, "id": alarm_id}
            alarm = Alarm.from_dict(record)
            self._records[alarm_id] = record
        return alarm

    def delete_alarm(self, alarm_id: int) -> None:
        with self._lock:
            if alarm_id not in self._records:
                raise KeyError(f"Alarm not found: {alarm_id}")
            del self._records[alarm_id]

    def get(self, alarm_id: int) -> Optional[dict]:
        """Raw record lookup."""
        with self._lock:
            record = self._records.get(alarm_id)
            return dict(record) if record is not None else None
