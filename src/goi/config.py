"""Configuration loader.

Reads a JSON file; keys present there override the defaults below. A
missing file means "use the defaults".
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .errors import ConfigError
from .jmdict import JMDICT_URL
from .search import DEFAULT_LIMIT
from .manga import DEFAULT_MANGA_KEY
from .store import DEFAULT_ENTRIES_KEY

DEFAULT_CONFIG_PATH = "goi.json"

DEFAULTS: Dict[str, Any] = {
    "store_dir": "data/store",
    "entries_key": DEFAULT_ENTRIES_KEY,
    "manga_key": DEFAULT_MANGA_KEY,
    "jmdict_url": JMDICT_URL,
    "jmdict_path": "data/jmdict-eng.json",
    "download_timeout": 60,
    "chunk_size": 65536,
    "search_limit": DEFAULT_LIMIT,
    "log_level": "INFO",
}


def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    cfg = dict(DEFAULTS)
    path = Path(path or DEFAULT_CONFIG_PATH)
    if not path.exists():
        return cfg
    try:
        overrides = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    if not isinstance(overrides, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")
    unknown = sorted(set(overrides) - set(DEFAULTS))
    if unknown:
        raise ConfigError(f"Unknown config keys in {path}: {unknown}")
    cfg.update(overrides)
    return cfg
