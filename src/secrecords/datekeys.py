"""Date keys: the canonical ``YYYY-MM-DD`` names of day buckets.

Keys are always derived from the *local* calendar day so that a record
logged late in the evening lands in the same bucket the user sees in
their daily log, regardless of the UTC date at that instant.
"""

from __future__ import annotations

import re
from datetime import date, datetime

_DATE_KEY_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def date_key(year: int, month: int, day: int) -> str:
    """Return the zero-padded ``YYYY-MM-DD`` key for a calendar day."""
    return f"{year:04d}-{month:02d}-{day:02d}"


def date_key_for(moment: date | datetime) -> str:
    """Return the key of the local calendar day containing *moment*.

    Aware datetimes are converted to the local zone first; naive ones are
    taken to already be local.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone()
        moment = moment.date()
    return date_key(moment.year, moment.month, moment.day)


def today_key() -> str:
    return date_key_for(datetime.now())


def is_date_key(value: str) -> bool:
    """True if *value* has the ``YYYY-MM-DD`` shape (digits only, no range check)."""
    return bool(_DATE_KEY_RE.fullmatch(value))


def parse_date_key(key: str) -> date:
    """Inverse of :func:`date_key`. Raises ``ValueError`` on a malformed key."""
    if not is_date_key(key):
        raise ValueError(f"Invalid date key: {key!r}. Expected YYYY-MM-DD.")
    return date.fromisoformat(key)


def month_prefix(year: int, month: int) -> str:
    """``YYYY-MM`` prefix shared by every key in the given month."""
    return f"{year:04d}-{month:02d}"
