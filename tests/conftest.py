"""Shared pytest fixtures for secrecords tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from secrecords.store import RecordStore


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def store(data_dir: Path) -> RecordStore:
    """Fresh RecordStore over an empty data directory."""
    return RecordStore(data_dir)


@pytest.fixture
def sample_records() -> list[dict[str, Any]]:
    """Two records for one day: a threat with severity and a false positive."""
    return [
        {
            "id": "a",
            "type": "threat",
            "title": "X",
            "description": "Y",
            "timestamp": "2024-03-01T10:00:00Z",
        },
        {
            "id": "b",
            "type": "false_positive",
            "title": "Scanner noise",
            "description": "Internal vulnerability scan",
            "timestamp": "2024-03-01T11:30:00Z",
            "severity": "low",
        },
    ]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
