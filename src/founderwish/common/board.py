from __future__ import annotations

from typing import Optional

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ..state.store import SessionStateStore
from .errors import ServerError
from .http import MAX_ERROR_BODY, endpoint, raise_for_status, send


INGEST_INFO_PATH = "/api/ingest-info"

logger = structlog.get_logger(__name__)


class IngestInfo(BaseModel):
    slug: Optional[str] = None
    public_id: Optional[str] = None

    @property
    def identifier(self) -> str:
        return self.slug or self.public_id or ""


class BoardResolver:
    """
    Resolves the board's public identifier (slug) and memoizes it in the store.

    Concurrent first calls may each hit the network; the value is idempotent
    and the last write to the cache wins.
    """

    def __init__(self, store: SessionStateStore, client: httpx.AsyncClient) -> None:
        self._store = store
        self._client = client

    async def ensure_slug(self) -> str:
        cfg = await self._store.current_config()
        if cfg.cached_board_slug:
            logger.debug("board_slug_cache_hit", slug=cfg.cached_board_slug)
            return cfg.cached_board_slug

        resp = await send(
            self._client,
            "GET",
            endpoint(cfg.base_url, INGEST_INFO_PATH),
            secret=cfg.ingest_secret,
        )
        raise_for_status(resp)

        try:
            info = IngestInfo.model_validate_json(resp.content)
        except ValidationError as ve:
            body = resp.text[:MAX_ERROR_BODY]
            raise ServerError(
                f"Failed to decode response: {ve.error_count()} error(s). Response: {body}"
            ) from ve

        identifier = info.identifier
        if not identifier:
            raise ServerError("API did not return a valid slug or public_id")

        await self._store.cache_board_slug(identifier, resolved_for=cfg)
        logger.info("board_slug_resolved", slug=identifier, source="network")
        return identifier


__all__ = ["BoardResolver", "IngestInfo", "INGEST_INFO_PATH"]
