"""Fixtures for HTTP API tests (FastAPI)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from secrecords.dashboard import create_app
from secrecords.store import RecordStore


@pytest.fixture
async def client(store: RecordStore) -> AsyncIterator[AsyncClient]:
    """Test client for an app backed by an empty store, no static files."""
    app = create_app(store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """A built-frontend directory with an index document and one asset."""
    root = tmp_path / "dist"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_text("<!doctype html><div id=app></div>")
    (root / "assets" / "app.js").write_text("console.log('app')")
    return root


@pytest.fixture
async def spa_client(store: RecordStore, static_dir: Path) -> AsyncIterator[AsyncClient]:
    """Test client for an app that also serves *static_dir*."""
    app = create_app(store, static_dir=static_dir)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
