from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .common.http import DEFAULT_TIMEOUT
from .common.kv_store import DEFAULT_STORE_DIR_ENV, STORE_FILE_NAME


ENV_BOARD_KEY = "FOUNDERWISH_BOARD_KEY"
ENV_BASE_URL = "FOUNDERWISH_BASE_URL"
ENV_STORE_DIR = DEFAULT_STORE_DIR_ENV
ENV_TIMEOUT = "FOUNDERWISH_TIMEOUT"
ENV_LOG_LEVEL = "FOUNDERWISH_LOG_LEVEL"
ENV_LOG_JSON = "FOUNDERWISH_LOG_JSON"

_TRUTHY = {"1", "true", "yes", "on"}


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


@dataclass(frozen=True)
class FounderWishSettings:
    """
    Process-level settings, usually read from the environment.

    Environment variables
    - `FOUNDERWISH_BOARD_KEY`: ingest secret for the board (required by `from_env`)
    - `FOUNDERWISH_BASE_URL`:  override for the service host
    - `FOUNDERWISH_STORE_DIR`: directory holding the local key-value store
    - `FOUNDERWISH_TIMEOUT`:   HTTP timeout in seconds (default 15)
    - `FOUNDERWISH_LOG_LEVEL`: logging level name (default INFO)
    - `FOUNDERWISH_LOG_JSON`:  render logs as JSON when truthy
    """

    board_key: Optional[str] = None
    base_url: Optional[str] = None
    store_dir: Path = Path(".founderwish")
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def store_path(self) -> Path:
        return self.store_dir / STORE_FILE_NAME

    @classmethod
    def from_env(cls, *, require_board_key: bool = True) -> "FounderWishSettings":
        board_key = _getenv(ENV_BOARD_KEY)
        if require_board_key:
            board_key = _require(board_key, ENV_BOARD_KEY)

        raw_timeout = _getenv(ENV_TIMEOUT)
        try:
            timeout = float(raw_timeout) if raw_timeout is not None else DEFAULT_TIMEOUT
        except ValueError as exc:
            raise ValueError(f"{ENV_TIMEOUT} must be a number, got {raw_timeout!r}") from exc
        if timeout <= 0:
            raise ValueError(f"{ENV_TIMEOUT} must be > 0")

        return cls(
            board_key=board_key,
            base_url=_getenv(ENV_BASE_URL),
            store_dir=Path(_getenv(ENV_STORE_DIR, ".founderwish")),
            timeout=timeout,
            log_level=(_getenv(ENV_LOG_LEVEL, "INFO") or "INFO").upper(),
            log_json=(_getenv(ENV_LOG_JSON, "") or "").lower() in _TRUTHY,
        )


__all__ = ["FounderWishSettings"]
