"""Day-bucketed record storage on the local filesystem.

Each date key owns one file, ``records_<YYYY-MM-DD>.json``, holding a
pretty-printed JSON array. Writes replace the whole bucket through a
sibling ``.tmp`` file and ``os.replace()``, so a reader sees either the
previous bucket or the new one, never a partial write.

There is no locking: two concurrent ``put`` calls for the same key race
and whichever rename lands last wins.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

BUCKET_PREFIX = "records_"
BUCKET_SUFFIX = ".json"
TMP_SUFFIX = ".tmp"
_PATH_SEPARATORS = frozenset({"/", "\\", "\x00"})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """Base class for failures of the record store."""


class StorageReadError(StorageError):
    """A bucket exists but could not be read or parsed."""

    def __init__(self, date_key: str, cause: Exception) -> None:
        self.date_key = date_key
        self.cause = cause
        super().__init__(f"Failed to read bucket {date_key}: {cause}")


class StorageWriteError(StorageError):
    """Serializing or committing a bucket failed. The prior bucket is intact."""

    def __init__(self, date_key: str, cause: Exception) -> None:
        self.date_key = date_key
        self.cause = cause
        super().__init__(f"Failed to write bucket {date_key}: {cause}")


class AggregationError(StorageError):
    """The data directory could not be enumerated."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + TMP_SUFFIX)
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


def bucket_filename(date_key: str) -> str:
    return f"{BUCKET_PREFIX}{date_key}{BUCKET_SUFFIX}"


class BucketStore(Protocol):
    """The operations callers rely on, independent of the storage medium."""

    def get(self, date_key: str) -> list[Any]: ...

    def put(self, date_key: str, records: Sequence[Any]) -> None: ...

    def keys_with_prefix(self, prefix: str) -> list[str]: ...


# ---------------------------------------------------------------------------
# File store
# ---------------------------------------------------------------------------


class RecordStore:
    """Flat directory of JSON day buckets.

    Callers always receive freshly parsed values; nothing is cached.
    """

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)
        self.ensure_dir()

    def __repr__(self) -> str:
        return f"RecordStore({str(self.data_dir)!r})"

    def ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def bucket_path(self, date_key: str) -> Path:
        """Path of the bucket file for *date_key*.

        Keys are not required to be real dates here (the HTTP layer checks
        that), but they must stay inside the data directory.
        """
        if not date_key or date_key in (".", "..") or any(sep in date_key for sep in _PATH_SEPARATORS):
            raise ValueError(f"Invalid date key: {date_key!r}")
        return self.data_dir / bucket_filename(date_key)

    def exists(self, date_key: str) -> bool:
        return self.bucket_path(date_key).is_file()

    def get(self, date_key: str) -> list[Any]:
        """Return the records stored for *date_key*, or ``[]`` if none were written.

        Raises ``StorageReadError`` if the bucket is unreadable or not valid JSON.
        """
        path = self.bucket_path(date_key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read bucket %s", path, exc_info=True)
            raise StorageReadError(date_key, exc) from exc
        try:
            records: list[Any] = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Corrupt bucket %s: %s", path, exc)
            raise StorageReadError(date_key, exc) from exc
        return records

    def put(self, date_key: str, records: Sequence[Any]) -> None:
        """Replace the whole bucket for *date_key* with *records*.

        On failure the temp artifact is removed, ``StorageWriteError`` is
        raised, and the previously committed bucket (if any) is unchanged.
        """
        path = self.bucket_path(date_key)
        try:
            content = json.dumps(list(records), indent=2, ensure_ascii=False)
            write_atomic(path, content + "\n")
        except (TypeError, ValueError, OSError) as exc:
            logger.error("Failed to write bucket %s: %s", path, exc)
            raise StorageWriteError(date_key, exc) from exc
        logger.debug("Wrote %d record(s) to %s", len(records), path)

    def keys_with_prefix(self, prefix: str) -> list[str]:
        """Date keys of every bucket whose key starts with *prefix*, sorted.

        Matching is on the file name only; the remainder of the key is not
        checked to be a real day. Raises ``AggregationError`` if the data
        directory cannot be listed.
        """
        name_prefix = BUCKET_PREFIX + prefix
        try:
            names = os.listdir(self.data_dir)
        except OSError as exc:
            logger.error("Failed to list data directory %s", self.data_dir, exc_info=True)
            raise AggregationError(f"Failed to list {self.data_dir}: {exc}") from exc
        keys = [
            name[len(BUCKET_PREFIX) : -len(BUCKET_SUFFIX)]
            for name in names
            if name.startswith(name_prefix) and name.endswith(BUCKET_SUFFIX)
        ]
        return sorted(keys)
