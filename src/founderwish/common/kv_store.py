from __future__ import annotations

import json
import os
import threading
import uuid
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Dict, Optional, Set

import structlog


DEFAULT_STORE_DIR_ENV = "FOUNDERWISH_STORE_DIR"
STORE_FILE_NAME = "store.json"

USER_IDENTIFIER_KEY = "user_identifier"
INSTALL_DATE_KEY = "install_date"
VOTED_IDS_KEY = "voted_ids"

logger = structlog.get_logger(__name__)


def _default_store_file() -> Path:
    # Prefer explicit env var, else project-local .founderwish folder
    base = os.environ.get(DEFAULT_STORE_DIR_ENV)
    if base:
        return Path(base) / STORE_FILE_NAME
    return Path(".founderwish") / STORE_FILE_NAME


class JsonKeyValueStore:
    """
    Tiny JSON-file key-value store for per-install state.

    - Backed by a single JSON object: { key: value, ... }
    - Loaded lazily on first access, rewritten in full on every change.
    - Best effort: a missing or corrupt file starts empty, and write failures
      are logged instead of raised.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else _default_store_file()
        self._data: Dict[str, Any] = {}
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        try:
            if self._path.exists():
                with self._path.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                    if isinstance(raw, dict):
                        self._data = {str(k): v for k, v in raw.items()}
        except (OSError, ValueError) as exc:
            # Corrupt store: start fresh
            logger.warning("kv_store_load_failed", path=str(self._path), error=str(exc))
            self._data = {}

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
        except OSError as exc:
            logger.warning("kv_store_save_failed", path=str(self._path), error=str(exc))

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            self._ensure_loaded()
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._ensure_loaded()
            self._data[key] = value
            self._save()

    def setdefault(self, key: str, value: Any) -> Any:
        """Store `value` under `key` unless present; return the stored value."""
        with self._lock:
            self._ensure_loaded()
            if key in self._data and self._data[key] not in (None, ""):
                return self._data[key]
            self._data[key] = value
            self._save()
            return value


class InstallInfo:
    """Stable anonymous identifier and first-launch timestamp for this install."""

    def __init__(self, store: JsonKeyValueStore) -> None:
        self._store = store

    def user_identifier(self) -> str:
        return str(self._store.setdefault(USER_IDENTIFIER_KEY, str(uuid.uuid4()).upper()))

    def install_date(self) -> datetime:
        now = datetime.now(UTC).isoformat(timespec="seconds")
        stored = self._store.setdefault(INSTALL_DATE_KEY, now)
        try:
            dt = datetime.fromisoformat(str(stored))
        except ValueError:
            # Unparseable value on disk: restart the clock
            self._store.set(INSTALL_DATE_KEY, now)
            dt = datetime.fromisoformat(now)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt


class VotedIdSet:
    """Persisted, append-only set of feedback ids this install already upvoted."""

    def __init__(self, store: JsonKeyValueStore) -> None:
        self._store = store

    def _load(self) -> Set[str]:
        raw = self._store.get(VOTED_IDS_KEY, [])
        if not isinstance(raw, list):
            return set()
        return {str(v) for v in raw if isinstance(v, (str, int)) and not isinstance(v, bool)}

    def __contains__(self, item_id: object) -> bool:
        return isinstance(item_id, str) and item_id in self._load()

    def __len__(self) -> int:
        return len(self._load())

    def ids(self) -> Set[str]:
        return self._load()

    def add(self, item_id: str) -> None:
        current = self._load()
        if item_id in current:
            return
        current.add(item_id)
        self._store.set(VOTED_IDS_KEY, sorted(current))


__all__ = [
    "DEFAULT_STORE_DIR_ENV",
    "InstallInfo",
    "JsonKeyValueStore",
    "VotedIdSet",
]
