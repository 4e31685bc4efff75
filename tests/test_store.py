"""Tests for secrecords.store — day buckets, atomic replace and prefix listing."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from secrecords.store import (
    AggregationError,
    RecordStore,
    StorageReadError,
    StorageWriteError,
    bucket_filename,
    write_atomic,
)


class TestLayout:
    def test_creates_data_dir(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "data"
        RecordStore(target)
        assert target.is_dir()

    def test_bucket_filename(self) -> None:
        assert bucket_filename("2024-03-01") == "records_2024-03-01.json"

    def test_put_writes_pretty_json_array(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        store.put("2024-03-01", sample_records)
        path = store.data_dir / "records_2024-03-01.json"
        text = path.read_text(encoding="utf-8")
        assert text.startswith("[\n  {")
        assert json.loads(text) == sample_records

    def test_non_ascii_kept_readable(self, store: RecordStore) -> None:
        store.put("2024-03-01", [{"title": "误报"}])
        assert "误报" in (store.data_dir / "records_2024-03-01.json").read_text(encoding="utf-8")

    @pytest.mark.parametrize("bad", ["", ".", "..", "../2024-03-01", "a/b", "a\\b"])
    def test_rejects_keys_outside_data_dir(self, store: RecordStore, bad: str) -> None:
        with pytest.raises(ValueError, match="Invalid date key"):
            store.bucket_path(bad)


class TestGet:
    def test_missing_bucket_is_empty(self, store: RecordStore) -> None:
        assert store.get("2099-12-31") == []

    def test_round_trip(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        store.put("2024-03-01", sample_records)
        assert store.get("2024-03-01") == sample_records

    def test_returns_copies(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        store.put("2024-03-01", sample_records)
        first = store.get("2024-03-01")
        first[0]["title"] = "mutated"
        first.append({"id": "zzz"})
        assert store.get("2024-03-01") == sample_records

    def test_corrupt_bucket_raises(self, store: RecordStore) -> None:
        (store.data_dir / "records_2024-03-01.json").write_text("[{not json", encoding="utf-8")
        with pytest.raises(StorageReadError) as exc_info:
            store.get("2024-03-01")
        assert exc_info.value.date_key == "2024-03-01"

    def test_invalid_utf8_raises(self, store: RecordStore) -> None:
        (store.data_dir / "records_2024-03-01.json").write_bytes(b"\xff\xfe[]")
        with pytest.raises(StorageReadError):
            store.get("2024-03-01")

    def test_io_fault_raises(self, store: RecordStore) -> None:
        store.put("2024-03-01", [])
        with patch.object(Path, "read_text", side_effect=PermissionError("denied")):
            with pytest.raises(StorageReadError, match="denied"):
                store.get("2024-03-01")

    def test_exists(self, store: RecordStore) -> None:
        assert not store.exists("2024-03-01")
        store.put("2024-03-01", [])
        assert store.exists("2024-03-01")


class TestPut:
    def test_repeated_put_is_last_write_wins(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        store.put("2024-03-01", sample_records)
        store.put("2024-03-01", sample_records)
        assert store.get("2024-03-01") == sample_records

    def test_replaces_rather_than_merges(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        store.put("2024-03-01", sample_records)
        store.put("2024-03-01", sample_records[:1])
        assert store.get("2024-03-01") == sample_records[:1]

    def test_empty_list_creates_bucket(self, store: RecordStore) -> None:
        store.put("2024-03-15", [])
        assert store.exists("2024-03-15")
        assert store.get("2024-03-15") == []

    def test_no_tmp_left_after_success(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        store.put("2024-03-01", sample_records)
        assert sorted(os.listdir(store.data_dir)) == ["records_2024-03-01.json"]

    def test_failed_rename_keeps_prior_bucket(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        store.put("2024-03-01", sample_records)
        with patch("secrecords.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageWriteError, match="disk full"):
                store.put("2024-03-01", [{"id": "new"}])
        assert store.get("2024-03-01") == sample_records
        assert not (store.data_dir / "records_2024-03-01.json.tmp").exists()

    def test_interrupted_before_rename_leaves_bucket_unchanged(
        self, store: RecordStore, sample_records: list[dict[str, Any]]
    ) -> None:
        """A temp file abandoned mid-write is invisible to readers."""
        store.put("2024-03-01", sample_records)
        (store.data_dir / "records_2024-03-01.json.tmp").write_text('[{"id": "half', encoding="utf-8")
        assert store.get("2024-03-01") == sample_records

    def test_next_put_overwrites_stale_tmp(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        (store.data_dir / "records_2024-03-01.json.tmp").write_text("garbage", encoding="utf-8")
        store.put("2024-03-01", sample_records)
        assert store.get("2024-03-01") == sample_records
        assert not (store.data_dir / "records_2024-03-01.json.tmp").exists()

    def test_unserializable_records_fail_cleanly(self, store: RecordStore, sample_records: list[dict[str, Any]]) -> None:
        store.put("2024-03-01", sample_records)
        with pytest.raises(StorageWriteError):
            store.put("2024-03-01", [{"when": object()}])
        assert store.get("2024-03-01") == sample_records
        assert not (store.data_dir / "records_2024-03-01.json.tmp").exists()

    def test_failed_first_write_creates_nothing(self, store: RecordStore) -> None:
        with patch("secrecords.store.os.replace", side_effect=OSError("boom")), pytest.raises(StorageWriteError):
            store.put("2024-03-01", [])
        assert os.listdir(store.data_dir) == []

    def test_accepts_any_sequence(self, store: RecordStore) -> None:
        store.put("2024-03-01", ({"id": "t"},))
        assert store.get("2024-03-01") == [{"id": "t"}]


class TestWriteAtomic:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "out.json"
        write_atomic(target, "[]\n")
        assert target.read_text() == "[]\n"

    def test_cleans_tmp_on_failure(self, tmp_path: Path) -> None:
        target = tmp_path / "out.json"
        target.write_text("old")
        with patch("secrecords.store.os.replace", side_effect=OSError("nope")), pytest.raises(OSError):
            write_atomic(target, "new")
        assert target.read_text() == "old"
        assert not (tmp_path / "out.json.tmp").exists()


class TestKeysWithPrefix:
    def test_matches_prefix_and_json_suffix(self, store: RecordStore) -> None:
        store.put("2024-03-01", [])
        store.put("2024-03-15", [])
        store.put("2024-04-01", [])
        (store.data_dir / "records_2024-03-20.json.tmp").write_text("[]")
        (store.data_dir / "notes_2024-03-02.json").write_text("[]")
        assert store.keys_with_prefix("2024-03") == ["2024-03-01", "2024-03-15"]

    def test_empty_dir(self, store: RecordStore) -> None:
        assert store.keys_with_prefix("2024-03") == []

    def test_suffix_not_validated(self, store: RecordStore) -> None:
        (store.data_dir / "records_2024-03-xx.json").write_text("[]")
        assert store.keys_with_prefix("2024-03") == ["2024-03-xx"]

    def test_missing_dir_raises(self, store: RecordStore) -> None:
        store.data_dir.rmdir()
        with pytest.raises(AggregationError):
            store.keys_with_prefix("2024-03")
