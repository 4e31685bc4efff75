"""secrecords — per-day security record store with a small JSON API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("secrecords")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from secrecords.store import RecordStore, StorageError, StorageReadError, StorageWriteError
from secrecords.summary import AggregationError, summarize

__all__ = [
    "AggregationError",
    "RecordStore",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "__version__",
    "summarize",
]
