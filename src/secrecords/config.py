"""Server configuration.

Settings are resolved once at startup and handed to the store and the
server explicitly. An optional JSON file supplies values; CLI flags
override them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3001
DEFAULT_HOST = "127.0.0.1"
DEFAULT_DATA_DIR = Path("data")


@dataclass(frozen=True)
class ServerConfig:
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    static_dir: Path | None = None
    log_dir: Path | None = None

    def with_overrides(self, **overrides: Any) -> ServerConfig:
        """Return a copy with every non-``None`` override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        for key in ("data_dir", "static_dir", "log_dir"):
            if key in changes:
                changes[key] = Path(changes[key])
        return replace(self, **changes)


def _coerce_port(raw: Any) -> int:
    try:
        port = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid port value %r in config; using default %d", raw, DEFAULT_PORT)
        return DEFAULT_PORT
    if not (1 <= port <= 65535):
        logger.warning("Port %d out of range (1-65535) in config; using default %d", port, DEFAULT_PORT)
        return DEFAULT_PORT
    return port


def _optional_path(raw: Any) -> Path | None:
    if raw is None or raw == "":
        return None
    return Path(str(raw))


def load_config(path: Path | None = None) -> ServerConfig:
    """Read a JSON config file. Returns defaults if missing or invalid.

    Relative directories in the file are resolved against the file's own
    directory.
    """
    if path is None or not path.exists():
        return ServerConfig()
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Corrupt config %s: %s; using defaults", path, exc)
        return ServerConfig()
    if not isinstance(data, dict):
        logger.warning("Config %s is not a JSON object; using defaults", path)
        return ServerConfig()

    base = path.parent

    def _resolve(p: Path | None) -> Path | None:
        if p is None or p.is_absolute():
            return p
        return base / p

    data_dir = _resolve(_optional_path(data.get("data_dir"))) or DEFAULT_DATA_DIR
    return ServerConfig(
        data_dir=data_dir,
        port=_coerce_port(data.get("port", DEFAULT_PORT)),
        host=str(data.get("host") or DEFAULT_HOST),
        static_dir=_resolve(_optional_path(data.get("static_dir"))),
        log_dir=_resolve(_optional_path(data.get("log_dir"))),
    )
