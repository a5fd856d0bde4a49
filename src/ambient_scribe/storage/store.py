"""Record stores for sessions and provider preferences.

Only two operations are needed: upsert a record identified by a set of
conflict columns, and fetch one record by exact match. ``HTTPRecordStore``
speaks the PostgREST dialect used by hosted Postgres services.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from threading import RLock
from typing import Protocol

import requests

from ..config import ScribeSettings, get_settings
from ..exceptions import PersistenceError


class RecordStore(Protocol):
    def upsert(self, table: str, record: dict, conflict_keys: Sequence[str]) -> None: ...

    def fetch_one(self, table: str, match: dict[str, str]) -> dict | None: ...


class InMemoryRecordStore:
    """Thread-safe dict-backed store for development and tests."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._tables: dict[str, dict[tuple, dict]] = {}
        self.upserts = 0

    def upsert(self, table: str, record: dict, conflict_keys: Sequence[str]) -> None:
        missing = [k for k in conflict_keys if record.get(k) is None]
        if missing:
            raise PersistenceError(table, f"missing conflict key(s): {', '.join(missing)}")
        key = tuple(record[k] for k in conflict_keys)
        with self._lock:
            rows = self._tables.setdefault(table, {})
            merged = {**rows.get(key, {}), **copy.deepcopy(record)}
            rows[key] = merged
            self.upserts += 1

    def fetch_one(self, table: str, match: dict[str, str]) -> dict | None:
        with self._lock:
            for row in self._tables.get(table, {}).values():
                if all(row.get(k) == v for k, v in match.items()):
                    return copy.deepcopy(row)
        return None

    def rows(self, table: str) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._tables.get(table, {}).values()]


class HTTPRecordStore:
    """PostgREST-style table API client."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        session: requests.Session | None = None,
        settings: ScribeSettings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        url = base_url or self._settings.store_url
        if not url:
            raise PersistenceError("*", "no store URL configured")
        self.base_url = url.rstrip("/")
        self._api_key = api_key if api_key is not None else self._settings.store_api_key
        self._session = session or requests.Session()

    def upsert(self, table: str, record: dict, conflict_keys: Sequence[str]) -> None:
        headers = self._headers()
        headers["Prefer"] = "resolution=merge-duplicates,return=minimal"
        self._send(
            "POST",
            table,
            params={"on_conflict": ",".join(conflict_keys)},
            json=record,
            headers=headers,
        )

    def fetch_one(self, table: str, match: dict[str, str]) -> dict | None:
        params = {k: f"eq.{v}" for k, v in match.items()}
        params["limit"] = "1"
        response = self._send("GET", table, params=params, headers=self._headers())
        try:
            rows = response.json()
        except ValueError as exc:
            raise PersistenceError(table, "response is not JSON") from exc
        if not isinstance(rows, list) or not rows:
            return None
        return rows[0]

    def _send(self, method: str, table: str, **kwargs: object) -> requests.Response:
        try:
            response = self._session.request(
                method,
                f"{self.base_url}/{table}",
                timeout=self._settings.request_timeout_seconds,
                **kwargs,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise PersistenceError(table, str(exc) or exc.__class__.__name__) from exc
        return response

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers


def create_record_store(settings: ScribeSettings | None = None) -> RecordStore:
    """HTTP store when ``store_url`` is configured, in-memory otherwise."""
    settings = settings or get_settings()
    if settings.store_url:
        return HTTPRecordStore(settings=settings)
    return InMemoryRecordStore()
