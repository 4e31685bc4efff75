"""Client-side accessors for the records API, plus local export helpers.

Every network call degrades instead of raising: a failed load returns an
empty list or mapping and a failed save returns ``False``, with the cause
logged. Callers rendering a daily log can therefore treat a backend
outage as "nothing recorded yet".
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import string
import time
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx

from secrecords.datekeys import today_key
from secrecords.types import MonthSummary, SecurityRecord

logger = logging.getLogger(__name__)

API_BASE_ENV = "SECRECORDS_API_BASE"
DEFAULT_API_BASE = "http://localhost:3001/api/records"
EXPORT_PREFIX = "security_records_"

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def resolve_api_base() -> str:
    """Base URL of the records endpoint, from the environment or the default."""
    return os.environ.get(API_BASE_ENV) or DEFAULT_API_BASE


class RecordsClient:
    """Thin wrapper over ``httpx.Client`` for the three record routes."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or resolve_api_base()).rstrip("/")
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> RecordsClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def load_records(self, date: str | None = None) -> list[SecurityRecord]:
        """Records saved for *date* (default: today). ``[]`` on any failure."""
        date = date or today_key()
        try:
            response = self._http.get(self.base_url, params={"date": date})
        except httpx.HTTPError as exc:
            logger.error("Failed to load records for %s: %s", date, exc)
            return []
        if not response.is_success:
            logger.warning("Loading records for %s returned HTTP %d", date, response.status_code)
            return []
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Invalid JSON loading records for %s: %s", date, exc)
            return []
        if not isinstance(data, list):
            logger.warning("Expected a JSON array of records for %s, got %s", date, type(data).__name__)
            return []
        return data

    def load_month_summary(self, year: int, month: int) -> MonthSummary:
        """Record counts per day for *year*-*month*. ``{}`` on any failure."""
        try:
            response = self._http.get(f"{self.base_url}/summary", params={"year": year, "month": month})
        except httpx.HTTPError as exc:
            logger.error("Failed to load summary for %04d-%02d: %s", year, month, exc)
            return {}
        if not response.is_success:
            logger.warning("Loading summary for %04d-%02d returned HTTP %d", year, month, response.status_code)
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Invalid JSON loading summary for %04d-%02d: %s", year, month, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def save_records(self, records: Sequence[SecurityRecord], date: str | None = None) -> bool:
        """Replace the records stored for *date* (default: today).

        Returns ``True`` only when the server confirmed the write.
        """
        date = date or today_key()
        try:
            response = self._http.post(self.base_url, json={"date": date, "records": list(records)})
        except httpx.HTTPError as exc:
            logger.error("Failed to save records for %s: %s", date, exc)
            return False
        if not response.is_success:
            logger.warning("Saving records for %s returned HTTP %d", date, response.status_code)
            return False
        return True


# ---------------------------------------------------------------------------
# Local helpers
# ---------------------------------------------------------------------------


def export_filename(date: str) -> str:
    return f"{EXPORT_PREFIX}{date}.json"


def export_to_json(
    records: Sequence[SecurityRecord],
    date: str | None = None,
    directory: Path | str = ".",
) -> Path:
    """Write *records* to ``security_records_<date>.json`` in *directory*."""
    target = Path(directory) / export_filename(date or today_key())
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(list(records), indent=2, ensure_ascii=False), encoding="utf-8")
    return target


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Short, roughly time-ordered record id: base-36 millis + random tail."""
    millis = int(time.time() * 1000)
    tail = "".join(secrets.choice(_BASE36_DIGITS) for _ in range(11))
    return _to_base36(millis) + tail


def format_timestamp(timestamp: str) -> str:
    """Render an ISO timestamp as local ``YYYY/MM/DD HH:MM``.

    Unparseable input is returned unchanged.
    """
    try:
        moment = datetime.fromisoformat(timestamp)
    except (TypeError, ValueError):
        return timestamp
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime("%Y/%m/%d %H:%M")


def new_record(
    title: str,
    description: str = "",
    *,
    record_type: str = "threat",
    severity: str | None = None,
) -> dict[str, Any]:
    """Build a record dict with a fresh id and the current timestamp."""
    record: dict[str, Any] = {
        "id": generate_id(),
        "type": record_type,
        "title": title,
        "description": description,
        "timestamp": datetime.now().astimezone().isoformat(),
    }
    if severity is not None:
        record["severity"] = severity
    return record
