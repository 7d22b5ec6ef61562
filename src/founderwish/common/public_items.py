from __future__ import annotations

import asyncio
from datetime import datetime, UTC
from typing import List, Optional, Set

import httpx
import structlog
from pydantic import BaseModel, ValidationError, field_validator

from ..state.store import SessionStateStore
from .board import BoardResolver
from .errors import InvalidResponseError, ServerError
from .http import MAX_ERROR_BODY, endpoint, raise_for_status, send
from .kv_store import VotedIdSet


PUBLIC_FEEDBACK_PATH = "/api/public-feedback"
PUBLIC_UPVOTE_PATH = "/api/public-upvote"
DEFAULT_LIMIT = 50

logger = structlog.get_logger(__name__)


class PublicItem(BaseModel):
    """
    A publicly visible feedback item.

    `status` is usually one of open/in_progress/planned/closed but is kept as
    an opaque string. `votes` is the local copy's count and is adjusted by
    VoteTracker during an upvote.
    """

    id: str
    title: str
    description: Optional[str] = None
    status: str
    source: Optional[str] = None
    created_at: datetime
    votes: Optional[int] = None

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # Naive timestamps from the server are UTC
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class PublicItemsPayload(BaseModel):
    items: List[PublicItem]


class UpvoteResponse(BaseModel):
    ok: bool
    votes: Optional[int] = None


class PublicItemsClient:
    """Lists public items for the resolved board and records upvotes."""

    def __init__(
        self,
        store: SessionStateStore,
        client: httpx.AsyncClient,
        resolver: BoardResolver,
    ) -> None:
        self._store = store
        self._client = client
        self._resolver = resolver

    async def fetch_public_items(self, limit: int = DEFAULT_LIMIT) -> List[PublicItem]:
        """
        Fetch public items for the board, at most `limit` of them.

        Single request, no pagination. Raises ServerError on a non-2xx status
        or an undecodable body, InvalidResponseError on transport failure.
        """
        if limit <= 0:
            raise ValueError("limit must be > 0")
        cfg = await self._store.current_config()
        slug = await self._resolver.ensure_slug()

        resp = await send(
            self._client,
            "GET",
            endpoint(cfg.base_url, PUBLIC_FEEDBACK_PATH),
            params={"public_id": slug},
        )
        raise_for_status(resp)

        try:
            payload = PublicItemsPayload.model_validate_json(resp.content)
        except ValidationError as ve:
            body = resp.text[:MAX_ERROR_BODY]
            raise ServerError(
                f"Failed to decode response: {ve.error_count()} error(s). Response: {body}"
            ) from ve

        items = payload.items[:limit]
        logger.info("public_items_fetched", count=len(items), slug=slug)
        return items

    async def upvote(self, feedback_id: str) -> int:
        """Record one upvote and return the server's authoritative vote count."""
        cfg = await self._store.current_config()
        resp = await send(
            self._client,
            "POST",
            endpoint(cfg.base_url, PUBLIC_UPVOTE_PATH),
            secret=cfg.ingest_secret,
            json_body={"feedback_id": feedback_id},
        )
        raise_for_status(resp)

        try:
            decoded = UpvoteResponse.model_validate_json(resp.content)
        except ValidationError as ve:
            raise InvalidResponseError() from ve
        if not decoded.ok or decoded.votes is None:
            raise InvalidResponseError()
        return decoded.votes


class VoteTracker:
    """
    Client-side upvote protocol: at most one successful vote per install.

    - Skips ids already voted (persisted) or with a vote in flight.
    - Bumps the local count before the request, then replaces it with the
      server's count on success or rolls it back (never below zero) on failure.
    - Only successful votes are persisted to the voted set.

    Not a server-side guarantee: another install, or a wiped store, can vote again.
    """

    def __init__(self, items_client: PublicItemsClient, voted: VotedIdSet) -> None:
        self._items = items_client
        self._voted = voted
        self._voting: Set[str] = set()

    def has_voted(self, item_id: str) -> bool:
        return item_id in self._voted

    def is_voting(self, item_id: str) -> bool:
        return item_id in self._voting

    def can_vote(self, item_id: str) -> bool:
        return not self.has_voted(item_id) and not self.is_voting(item_id)

    async def vote(self, item: PublicItem) -> bool:
        """
        Upvote `item`, adjusting `item.votes` in place.

        Returns False without any request when the item is already voted or
        mid-vote, True once the server confirmed. Errors are re-raised after
        rollback.
        """
        item_id = item.id
        if not self.can_vote(item_id):
            return False

        self._voting.add(item_id)
        item.votes = (item.votes or 0) + 1
        try:
            count = await self._items.upvote(item_id)
        except BaseException:
            # Includes cancellation: the vote was not recorded
            item.votes = max(0, (item.votes or 1) - 1)
            logger.warning("upvote_rolled_back", item_id=item_id)
            raise
        else:
            item.votes = count
            await asyncio.to_thread(self._voted.add, item_id)
            logger.info("upvote_recorded", item_id=item_id, votes=count)
            return True
        finally:
            self._voting.discard(item_id)


__all__ = [
    "DEFAULT_LIMIT",
    "PublicItem",
    "PublicItemsClient",
    "PublicItemsPayload",
    "UpvoteResponse",
    "VoteTracker",
]
