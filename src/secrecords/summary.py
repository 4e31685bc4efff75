"""Month summary: record counts per day bucket for one year-month."""

from __future__ import annotations

import logging

from secrecords.datekeys import month_prefix
from secrecords.store import AggregationError, BucketStore, StorageReadError

logger = logging.getLogger(__name__)

__all__ = ["AggregationError", "summarize"]


def summarize(store: BucketStore, year: int, month: int) -> dict[str, int]:
    """Map each existing bucket key in *year*-*month* to its record count.

    Days without a bucket are absent rather than zero. A bucket that cannot
    be parsed is skipped with a warning so one bad file does not hide the
    rest of the month. Raises ``AggregationError`` when the store cannot be
    enumerated.
    """
    summary: dict[str, int] = {}
    for key in store.keys_with_prefix(month_prefix(year, month)):
        try:
            records = store.get(key)
        except StorageReadError as exc:
            logger.warning("Skipping unreadable bucket %s in month summary: %s", key, exc.cause)
            continue
        if not isinstance(records, list):
            logger.warning("Skipping bucket %s: expected a JSON array, got %s", key, type(records).__name__)
            continue
        summary[key] = len(records)
    return summary
